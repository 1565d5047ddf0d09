"""
Loading skill bundles from directories and zip archives.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath

from toolwarden.errors import SkillLoadError
from toolwarden.skills.parser import parse_skill_md
from toolwarden.skills.types import LoadedSkill, SkillFile, SkillInfo

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"

SCAN_DIRS = ("scripts", "references", "assets", "templates", "core")

INCLUDED_EXTENSIONS: tuple[str, ...] = (
    # Scripts
    ".py", ".js", ".ts", ".sh", ".bash", ".zsh",
    # Documentation
    ".md", ".txt", ".rst",
    # Config
    ".json", ".yaml", ".yml", ".toml",
    # Web/XML
    ".html", ".css", ".xml", ".xsd",
    # Database
    ".sql",
    # Templates
    ".j2", ".jinja", ".jinja2",
)

# Checked in order; first matching suffix wins
FILE_TYPES: tuple[tuple[tuple[str, ...], str], ...] = (
    ((".py",), "python"),
    ((".js",), "javascript"),
    ((".ts",), "typescript"),
    ((".sh", ".bash", ".zsh"), "shell"),
    ((".md",), "markdown"),
    ((".json",), "json"),
    ((".yaml", ".yml"), "yaml"),
    ((".toml",), "toml"),
    ((".html",), "html"),
    ((".css",), "css"),
    ((".xml", ".xsd"), "xml"),
    ((".sql",), "sql"),
    ((".j2", ".jinja", ".jinja2"), "jinja"),
    ((".txt", ".rst"), "text"),
)


def should_include_file(filename: str) -> bool:
    return filename.lower().endswith(INCLUDED_EXTENSIONS)


def is_bundle_relative(name: str) -> bool:
    """True if ``name`` stays inside the bundle root once joined to it."""
    if not name or PureWindowsPath(name).drive:
        return False
    posix = PurePosixPath(name.replace("\\", "/"))
    return not posix.is_absolute() and ".." not in posix.parts


def detect_file_type(filename: str) -> str:
    """Map a filename to a language tag, or ``"unknown"``."""
    lowered = filename.lower()
    for suffixes, kind in FILE_TYPES:
        if lowered.endswith(suffixes):
            return kind
    return "unknown"


@dataclass
class SkillLoadReport:
    """Result of loading a skills directory: what loaded and what did not."""

    loaded: list[LoadedSkill] = field(default_factory=list)
    failures: list[SkillLoadError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _collect_dir(root: Path, sub: Path, files: dict[str, SkillFile]) -> None:
    for path in sorted(sub.rglob("*")):
        if not path.is_file() or not should_include_file(path.name):
            continue
        relative = path.relative_to(root).as_posix()
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.debug("Skipping unreadable file: %s", path)
            continue
        files[relative] = SkillFile(relative, content, detect_file_type(path.name))


def load_skill_from_directory(dir_path: Path | str) -> LoadedSkill:
    """
    Load a skill from a directory containing SKILL.md.

    Bundled files come from the ``scripts``, ``references``, ``assets``,
    ``templates`` and ``core`` subdirectories plus markdown files at the root.

    Raises:
        SkillLoadError: If SKILL.md is missing, unreadable or invalid.
    """
    dir_path = Path(dir_path)
    if not dir_path.is_dir():
        raise SkillLoadError("Path is not a directory", dir_path)

    skill_md = dir_path / SKILL_FILE
    if not skill_md.is_file():
        raise SkillLoadError(f"{SKILL_FILE} not found", dir_path)
    try:
        text = skill_md.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SkillLoadError(f"Failed to read {SKILL_FILE}: {e}", dir_path) from e

    try:
        skill = parse_skill_md(text)
    except SkillLoadError as e:
        raise SkillLoadError(e.reason, dir_path) from None

    files: dict[str, SkillFile] = {}
    for name in SCAN_DIRS:
        sub = dir_path / name
        if sub.is_dir():
            _collect_dir(dir_path, sub, files)

    for path in sorted(dir_path.iterdir()):
        if path.is_file() and path.suffix.lower() == ".md" and path.name != SKILL_FILE:
            try:
                files[path.name] = SkillFile(path.name, path.read_text(encoding="utf-8"), "markdown")
            except (OSError, UnicodeDecodeError):
                logger.debug("Skipping unreadable file: %s", path)

    return LoadedSkill(skill=skill, files=files, source=dir_path)


def load_skill_from_zip(zip_path: Path | str) -> LoadedSkill:
    """
    Load a skill from a zip archive.

    The directory holding SKILL.md is the skill root; entries outside it are
    ignored, and entries that are not valid UTF-8 are skipped.

    Raises:
        SkillLoadError: If the archive is unreadable or has no valid SKILL.md.
    """
    zip_path = Path(zip_path)
    try:
        archive = zipfile.ZipFile(zip_path)
    except (OSError, zipfile.BadZipFile) as e:
        raise SkillLoadError(f"Failed to read ZIP archive: {e}", zip_path) from e

    with archive:
        names = [info.filename for info in archive.infolist() if not info.is_dir()]
        skill_entries = sorted(
            (n for n in names if n == SKILL_FILE or n.endswith("/" + SKILL_FILE)),
            key=len,
        )
        if not skill_entries:
            raise SkillLoadError(f"{SKILL_FILE} not found in ZIP archive", zip_path)
        base = skill_entries[0][: -len(SKILL_FILE)]

        skill_text = None
        files: dict[str, SkillFile] = {}
        for name in names:
            if not name.startswith(base):
                continue
            relative = name[len(base):]
            if not is_bundle_relative(relative):
                logger.warning("Skipping entry outside the skill root in %s: %s", zip_path, name)
                continue
            if relative != SKILL_FILE and not should_include_file(relative):
                continue
            try:
                content = archive.read(name).decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("Skipping undecodable entry %s in %s", name, zip_path)
                continue
            if relative == SKILL_FILE:
                skill_text = content
            else:
                files[relative] = SkillFile(relative, content, detect_file_type(relative))

    if skill_text is None:
        raise SkillLoadError(f"{SKILL_FILE} is not valid UTF-8", zip_path)
    try:
        skill = parse_skill_md(skill_text)
    except SkillLoadError as e:
        raise SkillLoadError(e.reason, zip_path) from None
    return LoadedSkill(skill=skill, files=files, source=zip_path)


def load_skill(path: Path | str) -> LoadedSkill:
    """Load a skill from a directory or a ``.zip`` archive."""
    path = Path(path)
    if path.is_dir():
        return load_skill_from_directory(path)
    if path.is_file() and path.suffix.lower() == ".zip":
        return load_skill_from_zip(path)
    raise SkillLoadError("Not a skill directory or zip archive", path)


def _skill_candidates(root: Path) -> list[Path]:
    candidates = []
    for child in sorted(root.iterdir()):
        if child.is_dir() and (child / SKILL_FILE).is_file():
            candidates.append(child)
        elif child.is_file() and child.suffix.lower() == ".zip":
            candidates.append(child)
    return candidates


def load_skills(root: Path | str) -> SkillLoadReport:
    """
    Load every skill under ``root``.

    A bundle that fails to load is recorded in the report and does not stop
    the others from loading.
    """
    root = Path(root)
    report = SkillLoadReport()
    if not root.is_dir():
        logger.warning("Skills directory does not exist: %s", root)
        return report

    for candidate in _skill_candidates(root):
        try:
            report.loaded.append(load_skill(candidate))
        except SkillLoadError as e:
            logger.warning("Failed to load skill: %s", e)
            report.failures.append(e)

    logger.info("Loaded %d skill(s) from %s (%d failed)", len(report.loaded), root, len(report.failures))
    return report


def list_marketplace_skills(root: Path | str) -> list[SkillInfo]:
    """List skill directories under ``root`` by metadata only. Invalid ones are skipped."""
    root = Path(root)
    if not root.is_dir():
        return []

    skills: list[SkillInfo] = []
    for child in sorted(root.iterdir()):
        skill_md = child / SKILL_FILE
        if not (child.is_dir() and skill_md.is_file()):
            continue
        try:
            parsed = parse_skill_md(skill_md.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, SkillLoadError) as e:
            logger.warning("Failed to parse %s in %s: %s", SKILL_FILE, child, e)
            continue
        title = parsed.description[:50] + ("..." if len(parsed.description) > 50 else "")
        skills.append(
            SkillInfo(
                name=parsed.name,
                description=parsed.description,
                display_title=title,
                category=parsed.category,
                dir_name=child.name,
                dir_path=child,
            )
        )
    return skills
