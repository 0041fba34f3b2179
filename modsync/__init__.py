"""
modsync: keeps a directory of game mods in sync with Modrinth, CurseForge and GitHub.
"""

__version__ = "0.4.0"
