"""
Built-in command tables.

These are the defaults the catalog starts from before user JSON tables are
layered on top. Keep phrases lowercase and already normalized (no
punctuation), since they are compared against NormalizedText.
"""

from typing import Dict, List, Tuple

from natcmd.core.actions import (
    ActionRequest,
    CloseTab,
    ExecuteHostCommand,
    LaunchApp,
    MoveWindow,
    OpenFolder,
    ReloadCatalog,
    SendKeys,
    ShowHelp,
)


# ============================================================================
# NORMALIZER TABLES
# ============================================================================

DEFAULT_SUBSTITUTIONS: Dict[str, str] = {
    "closed": "close",
    "propertie": "properties",
    "propertys": "properties",
    "property's": "properties",
}

# Speech misrecognitions retried once when nothing matched
MISRECOGNITIONS: Dict[str, str] = {
    "tall window": "tool window",
    "tall": "tool",
}


# ============================================================================
# DIRECTIVE LOOKUPS
# ============================================================================

KNOWN_FOLDERS: Dict[str, str] = {
    "documents": "Documents",
    "document": "Documents",
    "my documents": "Documents",
    "downloads": "Downloads",
    "download": "Downloads",
    "my downloads": "Downloads",
    "desktop": "Desktop",
    "pictures": "Pictures",
    "my pictures": "Pictures",
    "music": "Music",
    "videos": "Videos",
    "home": "Home",
    "home folder": "Home",
}

APP_MAPPINGS: Dict[str, str] = {
    "calculator": "calc.exe",
    "calc": "calc.exe",
    "notepad": "notepad.exe",
    "edge": "msedge.exe",
    "chrome": "chrome.exe",
    "code": "code.exe",
    "vs code": "code.exe",
    "visual studio": "devenv.exe",
    "outlook": "outlook.exe",
    "explorer": "explorer.exe",
    "file explorer": "explorer.exe",
    "word": "winword.exe",
    "excel": "excel.exe",
    "powerpoint": "powerpnt.exe",
    "teams": "Teams.exe",
    "onenote": "onenote.exe",
    "paint": "mspaint.exe",
    "terminal": "wt.exe",
    "windows terminal": "wt.exe",
    "cmd": "wt.exe",
    "command prompt": "wt.exe",
    "skype": "skype.exe",
    "zoom": "zoom.exe",
    "slack": "slack.exe",
}

WEBSITE_MAPPINGS: Dict[str, str] = {
    "youtube": "https://www.youtube.com",
    "upwork": "https://www.upwork.com",
    "reddit": "https://www.reddit.com",
    "github": "https://github.com",
    "gmail": "https://mail.google.com",
    "google": "https://www.google.com",
    "facebook": "https://www.facebook.com",
    "twitter": "https://twitter.com",
    "linkedin": "https://www.linkedin.com",
    "amazon": "https://www.amazon.com",
    "stackoverflow": "https://stackoverflow.com",
    "bing": "https://www.bing.com",
    "yahoo": "https://www.yahoo.com",
    "netflix": "https://www.netflix.com",
    "bbc": "https://www.bbc.com",
    "twitch": "https://www.twitch.tv",
    "discord": "https://discord.com",
    "office": "https://www.office.com",
    "onenote": "https://www.onenote.com",
    "outlook": "https://outlook.live.com",
    "azure": "https://portal.azure.com",
}


# ============================================================================
# LITERAL OVERRIDES
# ============================================================================

LITERAL_OVERRIDES: Dict[str, ActionRequest] = {
    "debug application": ExecuteHostCommand("Debug.Start"),
    "run application": ExecuteHostCommand("Debug.StartWithoutDebugging"),
    "stop application": ExecuteHostCommand("Debug.StopDebugging"),
    "focus": SendKeys("ctrl alt tab"),
    "reload commands": ReloadCatalog(),
    "reload command tables": ReloadCatalog(),
}


HELP_PHRASES: Tuple[str, ...] = (
    "what can i say",
    "help",
    "show commands",
    "show available commands",
    "list commands",
    "show help",
    "commands list",
    "available commands",
)


# ============================================================================
# PATTERN RULE PHRASES
# ============================================================================

ALWAYS_ON_TOP_PHRASES: Tuple[str, ...] = (
    "always on top",
    "on top",
    "float above",
    "float this window",
    "make window float",
    "put window above",
    "put this window above",
)

ALWAYS_ON_TOP_REGEXES: Tuple[str, ...] = (
    r"float.*window.*top",
    r"make.*window.*top",
    r"float.*window.*above",
    r"make.*window.*float",
    r"put.*window.*top",
    r"put.*window.*above",
)

CODE_SEARCH_PHRASES: Tuple[str, ...] = (
    "search code",
    "code search",
    "find code",
    "open code search",
    "search for code",
)

CLOSE_TAB_PHRASES: Tuple[str, ...] = (
    "close tab",
    "close the tab",
    "close this tab",
    "close current tab",
)


# ============================================================================
# CONTEXT SCOPES
# ============================================================================

def _vs(name: str) -> ExecuteHostCommand:
    return ExecuteHostCommand(name)


# Tool window captions -> canonical Visual Studio commands. Checked before the
# canonical command phrases so "show solution explorer" lands on the view.
VISUAL_STUDIO_TOOL_WINDOWS: Dict[str, str] = {
    "error list": "View.ErrorList",
    "output window": "View.Output",
    "output": "View.Output",
    "solution explorer": "View.SolutionExplorer",
    "team explorer": "View.TeamExplorer",
    "task list": "View.TaskList",
    "properties window": "View.PropertiesWindow",
    "properties": "View.PropertiesWindow",
    "class view": "View.ClassView",
    "object browser": "View.ObjectBrowser",
    "call hierarchy": "View.CallHierarchy",
    "bookmarks": "View.BookmarkWindow",
    "find results": "View.FindResults1",
    "pending changes": "View.PendingChanges",
    "git changes": "View.GitChanges",
    "git repository": "View.GitRepository",
    "toolbox": "View.Toolbox",
    "diagnostic tools": "Debug.ShowDiagnosticTools",
    "immediate window": "Debug.Immediate",
    "immediate": "Debug.Immediate",
    "autos": "Debug.Autos",
    "locals": "Debug.Locals",
    "watch window": "Debug.Watch",
    "call stack": "Debug.CallStack",
    "breakpoints": "Debug.Breakpoints",
    "exception settings": "Debug.ExceptionSettings",
    "test explorer": "TestExplorer.ShowTestExplorer",
    "live unit testing": "TestExplorer.ShowLiveUnitTestingWindow",
}

VISUAL_STUDIO_COMMANDS: Dict[str, str] = {
    "build the solution": "Build.BuildSolution",
    "build solution": "Build.BuildSolution",
    "build the project": "Build.BuildProject",
    "build project": "Build.BuildProject",
    "clean solution": "Build.CleanSolution",
    "clean the solution": "Build.CleanSolution",
    "start debugging": "Debug.Start",
    "start application": "Debug.StartWithoutDebugging",
    "stop debugging": "Debug.StopDebugging",
    "close tool window": "Window.CloseToolWindow",
    "close the tool window": "Window.CloseToolWindow",
    "close current tool window": "Window.CloseToolWindow",
    "close the current tool window": "Window.CloseToolWindow",
    "format document": "Edit.FormatDocument",
    "find in files": "Edit.FindinFiles",
    "go to definition": "Edit.GoToDefinition",
    "rename symbol": "Refactor.Rename",
    "open recent files": "File.RecentFiles",
}

# VS Code has no automation bridge here, so its mappings are plain chords
VS_CODE_CHORDS: Dict[str, str] = {
    "show explorer": "ctrl+shift+e",
    "show source control": "ctrl+shift+g",
    "show extensions": "ctrl+shift+x",
    "format document": "shift+alt+f",
    "find in files": "ctrl+shift+f",
    "go to definition": "f12",
    "rename symbol": "f2",
    "start debugging": "f5",
    "stop debugging": "shift+f5",
    "open file": "ctrl+o",
    "command palette": "ctrl+shift+p",
}

# scope name -> (label, processes, ordered mappings)
CONTEXT_SCOPES: Dict[str, Tuple[str, Tuple[str, ...], List[Tuple[str, ActionRequest]]]] = {
    "devenv": (
        "Visual Studio",
        ("devenv",),
        [(phrase, _vs(cmd)) for phrase, cmd in VISUAL_STUDIO_TOOL_WINDOWS.items()]
        + [(phrase, _vs(cmd)) for phrase, cmd in VISUAL_STUDIO_COMMANDS.items()],
    ),
    "code": (
        "VS Code",
        ("code",),
        [(phrase, SendKeys(chord)) for phrase, chord in VS_CODE_CHORDS.items()],
    ),
}

# Keyboard fallback when the host automation bridge is unavailable.
# Each entry is a sequence of chords pressed in order.
HOST_COMMAND_CHORDS: Dict[str, Tuple[str, ...]] = {
    "Build.BuildSolution": ("ctrl+shift+b",),
    "Build.BuildProject": ("ctrl+shift+b",),
    "Debug.Start": ("f5",),
    "Debug.StartWithoutDebugging": ("ctrl+f5",),
    "Debug.StopDebugging": ("shift+f5",),
    "Window.CloseDocumentWindow": ("ctrl+f4",),
    "Edit.FormatDocument": ("ctrl+k", "ctrl+d"),
    "Edit.FindinFiles": ("ctrl+shift+f",),
    "Edit.GoToDefinition": ("f12",),
    "Refactor.Rename": ("ctrl+r", "ctrl+r"),
    "View.SolutionExplorer": ("ctrl+alt+l",),
    "View.ErrorList": ("ctrl+\\", "e"),
    "View.Output": ("ctrl+alt+o",),
    "View.PropertiesWindow": ("f4",),
    "File.RecentFiles": ("ctrl+r",),
}


# ============================================================================
# FUZZY CATALOG + HELP LISTINGS
# ============================================================================

# (label, description, action, scope)
FUZZY_ENTRIES: List[Tuple[str, str, ActionRequest, str]] = [
    ("maximize window", "Maximize the active window",
     MoveWindow("active", "current", "center", 100, 100), ""),
    ("restore window", "Restore the active window to 80% of the screen",
     MoveWindow("active", "current", "center", 80, 80), ""),
    ("move window to left half", "Move the active window to the left half of the screen",
     MoveWindow("active", "current", "left", 50, 100), ""),
    ("move window to right half", "Move the active window to the right half of the screen",
     MoveWindow("active", "current", "right", 50, 100), ""),
    ("move window to other monitor", "Move the active window to the next monitor",
     MoveWindow("active", "next"), ""),
    ("open downloads", "Open the Downloads folder", OpenFolder("Downloads"), ""),
    ("open documents", "Open the Documents folder", OpenFolder("Documents"), ""),
    ("close tab", "Close the current tab in supported applications", CloseTab(), ""),
    ("show help", "Show help and available commands", ShowHelp(), ""),
    ("code search", "Open code search", SendKeys("control ,"), ""),
]

# Visual Studio commands double as scoped fuzzy entries so typos still land
VISUAL_STUDIO_HELP: List[Tuple[str, str]] = [
    ("build the solution", "Build the entire solution"),
    ("build the project", "Build the current project"),
    ("start debugging", "Start debugging the startup project"),
    ("start application", "Start without debugging"),
    ("stop debugging", "Stop debugging"),
    ("close tab", "Close the current document tab"),
    ("format document", "Format the current document"),
    ("find in files", "Open the Find in Files dialog"),
    ("go to definition", "Go to definition of symbol"),
    ("rename symbol", "Rename the selected symbol"),
    ("show solution explorer", "Focus Solution Explorer"),
    ("open recent files", "Show recent files"),
]

for _phrase, _desc in VISUAL_STUDIO_HELP:
    _cmd = VISUAL_STUDIO_COMMANDS.get(_phrase) or VISUAL_STUDIO_TOOL_WINDOWS.get(_phrase.replace("show ", "", 1))
    if _cmd:
        FUZZY_ENTRIES.append((_phrase, _desc, _vs(_cmd), "devenv"))

VS_CODE_HELP: List[Tuple[str, str]] = [
    ("open file", "Open a file"),
    ("close tab", "Close the current tab"),
    ("format document", "Format the current document"),
    ("find in files", "Find in files"),
    ("go to definition", "Go to definition of symbol"),
    ("rename symbol", "Rename the selected symbol"),
    ("show explorer", "Show Explorer"),
    ("show source control", "Show Source Control"),
    ("show extensions", "Show Extensions"),
    ("start debugging", "Start debugging"),
    ("stop debugging", "Stop debugging"),
]

GENERAL_HELP: List[Tuple[str, str]] = [(label, desc) for label, desc, _, scope in FUZZY_ENTRIES if not scope] + [
    ("focus <window name>", "Focus a window by its title (e.g. focus zoom)"),
    ("open <app|folder|website>", "Launch a mapped app, known folder or website"),
    ("play <game>", "Launch an installed Steam game"),
    ("press <keys>", "Send a key chord (e.g. press ctrl shift t)"),
    ("type <text>", "Type text at the cursor"),
    ("emoji set <name> <emoji>", "Remember an emoji under a name"),
    ("emoji <name>", "Insert the emoji remembered under a name"),
    ("emoji type <emoji>", "Insert the given emoji immediately"),
    ("reload commands", "Reload the command tables from disk"),
]

HELP_LISTINGS: Dict[str, List[Tuple[str, str]]] = {
    "": GENERAL_HELP,
    "devenv": VISUAL_STUDIO_HELP,
    "code": VS_CODE_HELP,
}


# ============================================================================
# SYMBOLS
# ============================================================================

DEFAULT_SYMBOLS: Dict[str, str] = {
    "open downloads": "\U0001F4E5",
    "open documents": "\U0001F5C2️",
    "maximize window": "\U0001F5A5️",
    "move window to left half": "⬅️",
    "move window to right half": "➡️",
    "move window to other monitor": "\U0001F501",
    "close tab": "❌",
    "show help": "❓",
    "happy": "\U0001F600",
    "sad": "\U0001F622",
    "thumbs up": "\U0001F44D",
    "heart": "❤️",
}
