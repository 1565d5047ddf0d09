"""Tests for skill parsing, loading, registration and execution."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from conftest import FakeSandbox, RecordingHandler
from toolwarden.errors import (
    ExecutionFailedError,
    PermissionDeniedError,
    SandboxUnavailableError,
    SkillLoadError,
)
from toolwarden.permissions import DenyAllHandler, PermissionManager, PermissionType
from toolwarden.sandbox import NativeSandbox, Sandbox
from toolwarden.skills import (
    LoadedSkill,
    SkillFile,
    SkillRegistry,
    SkillTool,
    adapt_skills,
    detect_file_type,
    list_marketplace_skills,
    load_skill,
    load_skill_tools,
    load_skills,
    parse_skill_md,
)
from toolwarden.tools import ToolContext
from toolwarden.types import ExecutionMode, ExecutionResult


def skill_md(name: str = "pdf-tools", description: str = "Work with PDF files", extra: str = "") -> str:
    return f"---\nname: {name}\ndescription: {description}\n{extra}---\n\n# Usage\n\nRun the script.\n"


def make_skill_dir(root: Path, name: str = "pdf-tools", extra: str = "") -> Path:
    skill_dir = root / name
    (skill_dir / "scripts").mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(skill_md(name, extra=extra))
    (skill_dir / "scripts" / "x.sh").write_text("echo from-skill\n")
    (skill_dir / "scripts" / "blob.bin").write_bytes(b"\x00\x01")
    (skill_dir / "REFERENCE.md").write_text("# Reference\n")
    (skill_dir / "notes.txt").write_text("root text files are not bundled")
    return skill_dir


class TestSkillParser:
    """Tests for SKILL.md parsing."""

    def test_valid(self) -> None:
        """Frontmatter fields and body are extracted."""
        parsed = parse_skill_md(
            skill_md(extra="license: MIT\ncategory: documents\ntriggers:\n  - pdf\n  - merge\n")
        )
        assert parsed.name == "pdf-tools"
        assert parsed.description == "Work with PDF files"
        assert parsed.body.startswith("# Usage")
        assert parsed.license == "MIT"
        assert parsed.category == "documents"
        assert parsed.triggers == ["pdf", "merge"]
        assert parsed.requires_sandbox is False
        assert parsed.execution_mode is None

    def test_byte_order_mark(self) -> None:
        """A leading BOM is ignored."""
        assert parse_skill_md("\ufeff" + skill_md()).name == "pdf-tools"

    def test_missing_name(self) -> None:
        """A name is required."""
        with pytest.raises(SkillLoadError, match="'name'"):
            parse_skill_md("---\ndescription: no name\n---\nbody")

    def test_missing_description(self) -> None:
        """A description is required."""
        with pytest.raises(SkillLoadError, match="'description'"):
            parse_skill_md("---\nname: nodesc\n---\nbody")

    @pytest.mark.parametrize("name", ["x" * 65, "has space", "dots.not.allowed", "slash/name"])
    def test_invalid_names(self, name: str) -> None:
        """Names are short and limited to letters, digits, hyphens and underscores."""
        with pytest.raises(SkillLoadError):
            parse_skill_md(skill_md(name=f'"{name}"'))

    def test_description_too_long(self) -> None:
        """Descriptions are capped."""
        with pytest.raises(SkillLoadError):
            parse_skill_md(skill_md(description="d" * 1025))

    def test_bad_triggers(self) -> None:
        """Triggers must be a list of strings."""
        with pytest.raises(SkillLoadError, match="triggers"):
            parse_skill_md(skill_md(extra="triggers: pdf\n"))

    def test_requires_sandbox_string(self) -> None:
        """Truthy strings are accepted for requires_sandbox."""
        assert parse_skill_md(skill_md(extra="requires_sandbox: 'yes'\n")).requires_sandbox is True
        with pytest.raises(SkillLoadError):
            parse_skill_md(skill_md(extra="requires_sandbox: maybe\n"))

    def test_execution_mode(self) -> None:
        """Execution modes parse case-insensitively; unknown ones are rejected."""
        assert parse_skill_md(skill_md(extra="execution_mode: Sandbox\n")).execution_mode is ExecutionMode.SANDBOX
        with pytest.raises(SkillLoadError):
            parse_skill_md(skill_md(extra="execution_mode: chroot\n"))

    def test_sandbox_config(self) -> None:
        """Declared limits override the defaults."""
        parsed = parse_skill_md(
            skill_md(extra="sandbox_config:\n  image: python\n  timeout_seconds: 60\n  cpu_limit: 1\n")
        )
        config = parsed.sandbox_config.to_sandbox_config()
        assert config.resolved_image == "python:3.11-slim"
        assert config.timeout_seconds == 60
        assert config.cpu_limit == 1.0
        assert config.memory_limit == "256m"

    def test_sandbox_config_wrong_type(self) -> None:
        """Typed fields are checked."""
        with pytest.raises(SkillLoadError):
            parse_skill_md(skill_md(extra="sandbox_config:\n  timeout_seconds: soon\n"))
        with pytest.raises(SkillLoadError):
            parse_skill_md(skill_md(extra="sandbox_config:\n  volumes: [/]\n"))

    def test_no_frontmatter(self) -> None:
        """Plain markdown is not a skill."""
        with pytest.raises(SkillLoadError):
            parse_skill_md("# Just a heading\n")

    def test_invalid_yaml(self) -> None:
        """Broken YAML is reported as a load error."""
        with pytest.raises(SkillLoadError):
            parse_skill_md("---\nname: [unclosed\n---\nbody")


class TestSkillLoading:
    """Tests for loading bundles from disk."""

    def test_directory(self, temp_dir: Path) -> None:
        """Text files from known subdirectories and root markdown are bundled."""
        loaded = load_skill(make_skill_dir(temp_dir))
        assert loaded.name == "pdf-tools"
        assert sorted(loaded.files) == ["REFERENCE.md", "scripts/x.sh"]
        assert loaded.files["scripts/x.sh"].kind == "shell"

    def test_missing_skill_md(self, temp_dir: Path) -> None:
        """A directory without SKILL.md is not a skill."""
        (temp_dir / "empty").mkdir()
        with pytest.raises(SkillLoadError) as exc_info:
            load_skill(temp_dir / "empty")
        assert exc_info.value.path == temp_dir / "empty"

    def test_zip(self, temp_dir: Path) -> None:
        """The shallowest SKILL.md sets the root; other entries are ignored."""
        archive = temp_dir / "bundle.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("bundle/SKILL.md", skill_md("zipped"))
            zf.writestr("bundle/scripts/run.py", "print('hi')\n")
            zf.writestr("bundle/scripts/bad.py", b"\xff\xfe\x00")
            zf.writestr("bundle/image.png", b"\x89PNG")
            zf.writestr("bundle/nested/SKILL.md", skill_md("nested"))
            zf.writestr("elsewhere/tool.py", "print('outside')\n")

        loaded = load_skill(archive)
        assert loaded.name == "zipped"
        assert "scripts/run.py" in loaded.files
        assert "scripts/bad.py" not in loaded.files
        assert "image.png" not in loaded.files
        assert not any(path.startswith("elsewhere") for path in loaded.files)
        assert loaded.files["scripts/run.py"].kind == "python"

    async def test_zip_skips_entries_outside_root(self, temp_dir: Path) -> None:
        """Absolute, drive-prefixed and parent-relative entries never enter the bundle."""
        outside = temp_dir / "outside" / "pwned.sh"
        archive = temp_dir / "bundle.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("SKILL.md", skill_md("zipped"))
            zf.writestr("scripts/run.sh", "echo ok\n")
            zf.writestr(str(outside), "echo pwned\n")
            zf.writestr("../up.sh", "echo up\n")
            zf.writestr("C:/win.sh", "echo win\n")

        loaded = load_skill(archive)
        assert sorted(loaded.files) == ["scripts/run.sh"]

        sandbox = FakeSandbox()

        async def factory(mode: ExecutionMode) -> Sandbox:
            return sandbox

        tool = SkillTool(loaded, temp_dir, sandbox_factory=factory)
        await tool.call({"args": "ls"}, ToolContext(PermissionManager(RecordingHandler())))
        assert len(sandbox.calls) == 1
        assert not outside.exists()

    def test_zip_without_skill_md(self, temp_dir: Path) -> None:
        """A zip with no SKILL.md fails to load."""
        archive = temp_dir / "empty.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("readme.md", "# nothing")
        with pytest.raises(SkillLoadError):
            load_skill(archive)

    def test_load_skills_isolates_failures(self, temp_dir: Path) -> None:
        """One malformed bundle does not stop the rest."""
        for i in range(9):
            make_skill_dir(temp_dir, f"skill-{i}")
        bad = temp_dir / "broken"
        bad.mkdir()
        (bad / "SKILL.md").write_text("---\ndescription: missing name\n---\n")

        report = load_skills(temp_dir)
        assert len(report.loaded) == 9
        assert len(report.failures) == 1
        assert report.failures[0].path == bad
        assert not report.ok

        tools = adapt_skills(report.loaded, temp_dir)
        assert len(tools) == 9

    def test_load_skill_tools(self, temp_dir: Path) -> None:
        """Loading and adapting in one step returns tools and failures."""
        make_skill_dir(temp_dir / "skills", "alpha")
        tools, failures = load_skill_tools(temp_dir / "skills", temp_dir)
        assert [tool.name for tool in tools] == ["alpha"]
        assert failures == []

    def test_missing_root(self, temp_dir: Path) -> None:
        """A missing skills directory yields an empty report."""
        assert load_skills(temp_dir / "nope").loaded == []

    @pytest.mark.parametrize(
        ("filename", "kind"),
        [
            ("a.py", "python"),
            ("b.BASH", "shell"),
            ("c.yml", "yaml"),
            ("d.jinja2", "jinja"),
            ("e.xsd", "xml"),
            ("f.rst", "text"),
            ("g.bin", "unknown"),
        ],
    )
    def test_detect_file_type(self, filename: str, kind: str) -> None:
        """Extensions map to language tags."""
        assert detect_file_type(filename) == kind

    def test_marketplace_listing(self, temp_dir: Path) -> None:
        """Listings carry metadata and a shortened title."""
        long_description = "A very long description that goes on well past fifty characters"
        skill_dir = temp_dir / "long"
        skill_dir.mkdir()
        (skill_dir / "SKILL.md").write_text(skill_md("long", long_description, extra="category: docs\n"))
        make_skill_dir(temp_dir, "short")
        (temp_dir / "invalid").mkdir()
        (temp_dir / "invalid" / "SKILL.md").write_text("no frontmatter")

        listing = list_marketplace_skills(temp_dir)
        assert [info.name for info in listing] == ["long", "short"]
        assert listing[0].display_title == long_description[:50] + "..."
        assert listing[0].category == "docs"
        assert listing[1].display_title == "Work with PDF files"
        assert listing[0].to_dict()["dir_name"] == "long"


class TestSkillTool:
    """Tests for running skills as tools."""

    def make_tool(self, root: Path, extra: str = "", **kwargs: object) -> SkillTool:
        loaded = load_skill(make_skill_dir(root, extra=extra))
        return SkillTool(loaded, root, **kwargs)  # type: ignore[arg-type]

    async def test_read_needs_no_permission(self, temp_dir: Path) -> None:
        """Reading instructions works even when everything is denied."""
        tool = self.make_tool(temp_dir)
        context = ToolContext(PermissionManager(DenyAllHandler()))
        result = await tool.call({"args": "read"}, context)
        assert result["content"].startswith("# Usage")
        assert result["files"] == ["REFERENCE.md", "scripts/x.sh"]

    def test_description(self, temp_dir: Path) -> None:
        """The description tells the model to read first."""
        tool = self.make_tool(temp_dir)
        assert tool.name == "pdf-tools"
        assert tool.description.startswith("Work with PDF files. IMPORTANT:")
        assert "args='read'" in tool.description

    @pytest.mark.parametrize(
        ("extra", "agent_mode", "expected"),
        [
            ("", None, ExecutionMode.FLEXIBLE),
            ("execution_mode: direct\n", None, ExecutionMode.DIRECT),
            ("execution_mode: direct\n", ExecutionMode.SANDBOX, ExecutionMode.SANDBOX),
            ("requires_sandbox: true\n", None, ExecutionMode.SANDBOX),
            ("requires_sandbox: true\n", ExecutionMode.FLEXIBLE, ExecutionMode.SANDBOX),
        ],
    )
    def test_effective_mode(
        self, temp_dir: Path, extra: str, agent_mode: ExecutionMode | None, expected: ExecutionMode
    ) -> None:
        """Agent override, then skill declaration, then Flexible."""
        tool = self.make_tool(temp_dir, extra, agent_execution_mode=agent_mode)
        assert tool.effective_mode() is expected

    async def test_requires_sandbox_refuses_direct(self, temp_dir: Path) -> None:
        """A sandbox-only skill cannot run under a Direct agent."""
        sandbox = FakeSandbox()

        async def factory(mode: ExecutionMode) -> Sandbox:
            return sandbox

        tool = self.make_tool(
            temp_dir,
            "requires_sandbox: true\n",
            agent_execution_mode=ExecutionMode.DIRECT,
            sandbox_factory=factory,
        )
        context = ToolContext(PermissionManager(RecordingHandler()))
        with pytest.raises(ExecutionFailedError, match="requires a sandbox"):
            await tool.call({"args": "ls"}, context)
        assert sandbox.calls == []

    async def test_requires_sandbox_never_falls_back_to_native(self, temp_dir: Path) -> None:
        """Under Flexible, a sandbox-only skill asks for Sandbox mode and fails without Docker."""
        modes: list[ExecutionMode] = []

        async def factory(mode: ExecutionMode) -> Sandbox:
            modes.append(mode)
            raise SandboxUnavailableError("Sandbox mode requires Docker but it is not available")

        tool = self.make_tool(
            temp_dir,
            "requires_sandbox: true\n",
            agent_execution_mode=ExecutionMode.FLEXIBLE,
            sandbox_factory=factory,
        )
        with pytest.raises(ExecutionFailedError, match="requires Docker"):
            await tool.call({"args": "ls"}, ToolContext(PermissionManager(RecordingHandler())))
        assert modes == [ExecutionMode.SANDBOX]

    async def test_runs_with_skill_files(self, temp_dir: Path) -> None:
        """Commands see the bundled files through SKILL_FILES_PATH."""
        modes: list[ExecutionMode] = []

        async def factory(mode: ExecutionMode) -> Sandbox:
            modes.append(mode)
            return NativeSandbox()

        handler = RecordingHandler()
        tool = self.make_tool(temp_dir, agent_execution_mode=ExecutionMode.DIRECT, sandbox_factory=factory)
        result = await tool.call({"args": 'sh "$SKILL_FILES_PATH/scripts/x.sh"'}, ToolContext(PermissionManager(handler)))

        assert result == {"stdout": "from-skill\n", "stderr": ""}
        assert modes == [ExecutionMode.DIRECT]
        [request] = handler.requests
        assert request.permission_type is PermissionType.SHELL_EXECUTE
        assert request.metadata["skill"] == "pdf-tools"

    async def test_failure_raises(self, temp_dir: Path) -> None:
        """A non-zero exit is an execution failure carrying stderr."""
        sandbox = FakeSandbox(result=ExecutionResult.failure("boom", 3))

        async def factory(mode: ExecutionMode) -> Sandbox:
            return sandbox

        tool = self.make_tool(temp_dir, sandbox_factory=factory)
        with pytest.raises(ExecutionFailedError) as exc_info:
            await tool.call({"args": "false"}, ToolContext(PermissionManager(RecordingHandler())))
        assert exc_info.value.stderr == "boom"
        assert sandbox.calls[0]["extra_files"] is not None

    async def test_files_outside_bundle_not_written(self, temp_dir: Path) -> None:
        """Only files that resolve inside the temporary skill directory are written."""
        outside = temp_dir / "outside" / "pwned.sh"
        files = {
            path: SkillFile(path, "echo hi\n", "shell")
            for path in ("scripts/ok.sh", str(outside), "../../escape.sh")
        }
        loaded = LoadedSkill(skill=parse_skill_md(skill_md()), files=files)

        async def factory(mode: ExecutionMode) -> Sandbox:
            return NativeSandbox()

        tool = SkillTool(loaded, temp_dir, agent_execution_mode=ExecutionMode.DIRECT, sandbox_factory=factory)
        result = await tool.call(
            {"args": 'cd "$SKILL_FILES_PATH" && find . -type f | sort'},
            ToolContext(PermissionManager(RecordingHandler())),
        )

        assert result["stdout"].split() == ["./scripts/ok.sh"]
        assert not outside.exists()

    async def test_denied(self, temp_dir: Path) -> None:
        """Commands other than read need ShellExecute permission."""
        sandbox = FakeSandbox()

        async def factory(mode: ExecutionMode) -> Sandbox:
            return sandbox

        tool = self.make_tool(temp_dir, sandbox_factory=factory)
        with pytest.raises(PermissionDeniedError):
            await tool.call({"args": "ls"}, ToolContext(PermissionManager(DenyAllHandler())))
        assert sandbox.calls == []


class TestSkillRegistry:
    """Tests for agent-to-skill assignment."""

    def test_assign_and_unregister(self, temp_dir: Path) -> None:
        """Unregistering removes the skill from every agent."""
        registry = SkillRegistry()
        registry.register(load_skill(make_skill_dir(temp_dir, "alpha")))
        registry.register(load_skill(make_skill_dir(temp_dir, "beta")))

        registry.assign("agent-1", "beta")
        registry.assign("agent-1", "alpha")
        registry.assign("agent-2", "alpha")
        assert [s.name for s in registry.skills_for("agent-1")] == ["alpha", "beta"]
        assert registry.agents_for("alpha") == ["agent-1", "agent-2"]

        assert registry.unregister("alpha")
        assert [s.name for s in registry.skills_for("agent-1")] == ["beta"]
        assert registry.agents_for("alpha") == []
        assert "alpha" not in registry
        assert len(registry) == 1

    def test_assign_unknown(self) -> None:
        """Only registered skills can be assigned."""
        with pytest.raises(KeyError):
            SkillRegistry().assign("agent", "ghost")

    def test_unassign(self, temp_dir: Path) -> None:
        """Unassigning returns whether anything changed."""
        registry = SkillRegistry()
        registry.register(load_skill(make_skill_dir(temp_dir, "alpha")))
        registry.assign("a", "alpha")
        assert registry.unassign("a", "alpha")
        assert not registry.unassign("a", "alpha")

    def test_register_directory(self, temp_dir: Path) -> None:
        """Every valid bundle in a directory is registered."""
        make_skill_dir(temp_dir, "one")
        make_skill_dir(temp_dir, "two")
        registry = SkillRegistry()
        report = registry.register_directory(temp_dir)
        assert report.ok
        assert registry.names() == ["one", "two"]
