"""
Process launch, known-folder and URL openers.
"""
import os
import subprocess
import webbrowser
from pathlib import Path
from typing import Dict, Optional

from natcmd.core.errors import EffectorError
from natcmd.core.logger import get_logger

try:
    import win32com.client
    import win32gui
    from win32com.shell import shell, shellcon
    HAS_PYWIN32 = True
except ImportError:
    HAS_PYWIN32 = False


def _is_uri(target: str) -> bool:
    scheme, sep, _ = target.partition("://")
    return bool(sep) and scheme.isalpha() and len(scheme) > 1


class ShellProcessLauncher:
    """Start an executable or URI; on failure shell-open it through explorer."""

    def __init__(self):
        self.logger = get_logger()

    def launch(self, exe_or_uri: str) -> str:
        target = (exe_or_uri or "").strip()
        if not target:
            raise EffectorError("nothing to launch")
        if os.name != "nt":
            raise EffectorError("launching apps requires Windows")

        if _is_uri(target):
            os.startfile(target)
            return f"Opened {target}"

        try:
            if target.lower().endswith(".lnk"):
                os.startfile(target)
            else:
                subprocess.Popen([target], shell=False)
            return f"Launched {target}"
        except OSError as e:
            self.logger.debug(f"[LADDER] direct start of '{target}' failed ({e}); trying shell-open")

        try:
            subprocess.Popen(["explorer.exe", target], shell=False)
        except OSError as e:
            raise EffectorError(f"could not launch '{target}': {e}") from e
        return f"Launched {target} (shell)"


def known_folder_path(name: str) -> Path:
    """Filesystem path for a known folder name ("Documents", "Downloads", ...)."""
    key = (name or "").strip().lower()
    if key == "documents" and HAS_PYWIN32:
        # Honors OneDrive / redirected Documents
        return Path(shell.SHGetFolderPath(0, shellcon.CSIDL_PERSONAL, None, 0))
    home = Path.home()
    folders: Dict[str, Path] = {
        "home": home,
        "documents": home / "Documents",
        "downloads": home / "Downloads",
        "desktop": home / "Desktop",
        "pictures": home / "Pictures",
        "music": home / "Music",
        "videos": home / "Videos",
    }
    if key not in folders:
        raise EffectorError(f"unknown folder '{name}'")
    return folders[key]


def _find_explorer_window(path: Path) -> Optional[int]:
    """HWND of an Explorer window already showing path."""
    if not HAS_PYWIN32:
        return None
    wanted = os.path.normcase(str(path))
    for window in win32com.client.Dispatch("Shell.Application").Windows():
        try:
            shown = window.Document.Folder.Self.Path
        except AttributeError:
            # Internet Explorer / non-folder shell windows
            continue
        if os.path.normcase(shown) == wanted:
            return window.HWND
    return None


class ShellFolderOpener:
    """Open a known folder, reusing an Explorer window that already shows it."""

    def __init__(self):
        self.logger = get_logger()

    def open_known_folder(self, name: str) -> str:
        if os.name != "nt":
            raise EffectorError("opening folders requires Windows")
        path = known_folder_path(name)
        if not path.exists():
            raise EffectorError(f"{path} does not exist")

        hwnd = _find_explorer_window(path)
        if hwnd:
            win32gui.ShowWindow(hwnd, 9)  # SW_RESTORE
            win32gui.SetForegroundWindow(hwnd)
            return f"Switched to {path.name}"

        os.startfile(str(path))
        return f"Opened {path.name}"


class WebBrowserUrlOpener:
    def open_url(self, url: str) -> str:
        url = (url or "").strip()
        if not url:
            raise EffectorError("no URL to open")
        if not _is_uri(url):
            url = f"https://{url}"
        if not webbrowser.open(url):
            raise EffectorError(f"no browser accepted {url}")
        return f"Opened {url}"
