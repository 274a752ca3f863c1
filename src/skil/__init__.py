"""
skil - Package manager for agent skill bundles.

Resolves skill sources (local paths, owner/repo shorthands, hosted git URLs),
installs them into a canonical store and links them into the skill
directories of the installed coding agents.
"""

__version__ = "0.1.0"
