"""
Framework integrations for toolwarden.

Import the submodules directly; each requires its optional extra.
"""
