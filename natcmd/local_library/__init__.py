"""
natcmd.local_library

Name resolution for installed software. Currently the Steam library, used by
"play <game>" and by the AI fallback's LaunchApp rewrite.
"""
from natcmd.local_library.steam import SteamGame, SteamNameResolver

__all__ = ["SteamGame", "SteamNameResolver"]
