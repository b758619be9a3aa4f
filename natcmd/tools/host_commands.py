"""
Host command execution through Visual Studio's COM automation (EnvDTE).

execute() returns False when no running Visual Studio instance can be found
or the command is rejected; the dispatcher then falls back to the keyboard
chord table.
"""
from typing import Optional

from natcmd.core.logger import get_logger

try:
    import pythoncom
    import pywintypes
    import win32com.client
    HAS_PYWIN32 = True
except ImportError:
    HAS_PYWIN32 = False

# Newest first; the unversioned ProgID picks whichever registered last
DTE_PROG_IDS = (
    "VisualStudio.DTE",
    "VisualStudio.DTE.17.0",
    "VisualStudio.DTE.16.0",
    "VisualStudio.DTE.15.0",
    "VisualStudio.DTE.14.0",
)


def get_running_dte():
    """The first running DTE object, or None."""
    if not HAS_PYWIN32:
        return None
    for prog_id in DTE_PROG_IDS:
        try:
            return win32com.client.GetActiveObject(prog_id)
        except pywintypes.com_error:
            continue
    return None


class VisualStudioCommandExecutor:
    """HostCommandExecutor for Visual Studio (devenv)."""

    def __init__(self):
        self.logger = get_logger()

    def execute(self, name: str, args: Optional[str] = None) -> bool:
        if not HAS_PYWIN32:
            self.logger.debug("[LADDER] pywin32 not installed, no DTE automation")
            return False
        # The dispatcher may run on any thread
        pythoncom.CoInitialize()
        try:
            dte = get_running_dte()
            if dte is None:
                self.logger.debug(f"[LADDER] No running Visual Studio for '{name}'")
                return False
            try:
                dte.ExecuteCommand(name, args or "")
            except pywintypes.com_error as e:
                self.logger.warning(f"[LADDER] DTE rejected '{name}': {e}")
                return False
            self.logger.debug(f"[LADDER] Executed via DTE: {name} {args or ''}".rstrip())
            return True
        finally:
            pythoncom.CoUninitialize()
