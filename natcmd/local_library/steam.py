"""
Steam library lookup: free-text game name -> steam://rungameid/<appid>.

Installed games come from steamapps/appmanifest_*.acf in every library listed
in steamapps/libraryfolders.vdf. Matching order: exact name, normalized
equality, normalized substring, normalized prefix.
"""
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from natcmd.core.config import Config
from natcmd.core.logger import get_logger

try:
    import winreg
except ImportError:
    winreg = None

STEAM_URI_PREFIX = "steam://rungameid/"

_VDF_PATH_RE = re.compile(r'"path"\s*"([^"]+)"', re.IGNORECASE)
# Pre-2021 libraryfolders.vdf: "1" "D:\\SteamLibrary"
_VDF_LEGACY_RE = re.compile(r'"\d+"\s*"([^"]+)"')
_APPID_RE = re.compile(r'"appid"\s*"(\d+)"')
_NAME_RE = re.compile(r'"name"\s*"([^"]+)"')


@dataclass(frozen=True)
class SteamGame:
    app_id: str
    name: str

    @property
    def launch_uri(self) -> str:
        return f"{STEAM_URI_PREFIX}{self.app_id}"


def normalize_game_name(name: str) -> str:
    """Lowercase, "two"/"to" -> "2", alphanumerics only."""
    s = (name or "").lower()
    s = re.sub(r"\b(?:two|to)\b", "2", s)
    return re.sub(r"[^a-z0-9]", "", s)


def _registry_steam_path() -> Optional[str]:
    if winreg is None:
        return None
    try:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, r"Software\Valve\Steam") as key:
            value, _ = winreg.QueryValueEx(key, "SteamPath")
    except OSError:
        return None
    return value if isinstance(value, str) else None


def find_steam_path() -> Optional[Path]:
    """Config override, then the registry, then Program Files (x86)\\Steam."""
    candidates = [Config.STEAM_PATH, _registry_steam_path()]
    program_files = os.environ.get("ProgramFiles(x86)")
    if program_files:
        candidates.append(os.path.join(program_files, "Steam"))
    for candidate in candidates:
        if candidate and Path(candidate).is_dir():
            return Path(candidate)
    return None


def _library_dirs(steam_path: Path) -> List[Path]:
    default = steam_path / "steamapps"
    dirs = [default]
    vdf = default / "libraryfolders.vdf"
    if not vdf.is_file():
        return dirs
    try:
        text = vdf.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        get_logger().debug(f"[RESOLVE] Could not read {vdf}: {e}")
        return dirs

    raw_paths = _VDF_PATH_RE.findall(text) + _VDF_LEGACY_RE.findall(text)
    for raw in raw_paths:
        parent = raw.replace("\\\\", "\\").strip()
        if not parent:
            continue
        candidate = Path(parent)
        if candidate.name.lower() != "steamapps":
            candidate = candidate / "steamapps"
        if candidate.is_dir() and candidate not in dirs:
            dirs.append(candidate)
    return dirs


def installed_games(steam_path: Optional[Path] = None) -> List[SteamGame]:
    steam_path = steam_path or find_steam_path()
    if steam_path is None:
        return []
    games: List[SteamGame] = []
    for library in _library_dirs(Path(steam_path)):
        if not library.is_dir():
            continue
        for manifest in sorted(library.glob("appmanifest_*.acf")):
            try:
                content = manifest.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            app_id = _APPID_RE.search(content)
            name = _NAME_RE.search(content)
            if app_id and name:
                games.append(SteamGame(app_id.group(1), name.group(1)))
    return games


def find_game(name: str, games: List[SteamGame]) -> Optional[SteamGame]:
    wanted = normalize_game_name(name)
    if not wanted:
        return None
    for game in games:
        if game.name.lower() == name.strip().lower():
            return game
    normalized = [(normalize_game_name(g.name), g) for g in games]
    for norm, game in normalized:
        if norm == wanted:
            return game
    for norm, game in normalized:
        if wanted in norm:
            return game
    for norm, game in normalized:
        if norm and wanted.startswith(norm):
            return game
    return None


class SteamNameResolver:
    """NameResolver over the local Steam library."""

    def __init__(self, steam_path: Optional[Path] = None):
        self.steam_path = Path(steam_path) if steam_path else None
        self.logger = get_logger()

    def resolve(self, name: str) -> Optional[str]:
        games = installed_games(self.steam_path)
        game = find_game(name, games)
        if game is None:
            self.logger.debug(f"[RESOLVE] No Steam game matches '{name}' ({len(games)} installed)")
            return None
        self.logger.debug(f"[RESOLVE] Steam: '{name}' -> {game.name} ({game.app_id})")
        return game.launch_uri
