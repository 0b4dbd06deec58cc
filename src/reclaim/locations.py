"""Well-known cache and developer-tool locations.

Paths are relative to the user's home directory. The named cache actions are
the only non-reclaimable-unit paths reclaim will ever delete.
"""

from pydantic import BaseModel, Field


class KnownFolder(BaseModel):
    """A fixed, named folder whose size is reported."""

    name: str = Field(..., description="Display name")
    relative_path: str = Field(..., description="Path relative to the home directory")


# Caches that regenerate on demand
CACHE_FOLDERS: list[KnownFolder] = [
    KnownFolder(name="VS Code Cache", relative_path="Library/Application Support/Code/Cache"),
    KnownFolder(
        name="VS Code CachedData", relative_path="Library/Application Support/Code/CachedData"
    ),
    KnownFolder(
        name="VS Code globalStorage",
        relative_path="Library/Application Support/Code/User/globalStorage",
    ),
    KnownFolder(name="Cursor Cache", relative_path="Library/Application Support/Cursor/Cache"),
    KnownFolder(name="pnpm Store", relative_path="Library/Caches/pnpm"),
    KnownFolder(name="npm Cache", relative_path=".npm"),
    KnownFolder(name="Homebrew", relative_path="Library/Caches/Homebrew"),
    KnownFolder(name="Playwright", relative_path="Library/Caches/ms-playwright"),
    KnownFolder(name="Electron", relative_path="Library/Caches/electron"),
    KnownFolder(name="pip Cache", relative_path="Library/Caches/pip"),
    KnownFolder(name="Google Chrome", relative_path="Library/Caches/Google"),
]

# SDKs, package stores and build outputs of developer tooling
DEV_TOOL_FOLDERS: list[KnownFolder] = [
    KnownFolder(name="Android SDK", relative_path="Library/Android"),
    KnownFolder(name="Flutter pub-cache", relative_path=".pub-cache"),
    KnownFolder(name="Xcode DerivedData", relative_path="Library/Developer/Xcode/DerivedData"),
    KnownFolder(name="iOS Simulators", relative_path="Library/Developer/CoreSimulator"),
    KnownFolder(name="CocoaPods", relative_path="Library/Caches/CocoaPods"),
    KnownFolder(name="Gradle", relative_path=".gradle"),
    KnownFolder(name="Maven", relative_path=".m2"),
    KnownFolder(name="Cargo (Rust)", relative_path=".cargo"),
    KnownFolder(name="Go Modules", relative_path="go"),
]

# Named cache purges: action key -> paths removed together
CACHE_ACTIONS: dict[str, list[str]] = {
    "vscode-cache": [
        "Library/Application Support/Code/Cache",
        "Library/Application Support/Code/CachedData",
        "Library/Application Support/Code/CachedExtensionVSIXs",
        "Library/Application Support/Code/logs",
    ],
    "npm-cache": [
        "Library/Caches/pnpm",
        ".npm/_cacache",
    ],
    "homebrew-cache": ["Library/Caches/Homebrew"],
    "playwright-cache": [
        "Library/Caches/ms-playwright",
        "Library/Caches/ms-playwright-go",
    ],
    "electron-cache": ["Library/Caches/electron"],
}

# Full purge: the regenerable bulk of each action, leaving logs and secondary stores
CLEANUP_ALL_PATHS: list[str] = [
    "Library/Application Support/Code/Cache",
    "Library/Application Support/Code/CachedData",
    "Library/Application Support/Code/CachedExtensionVSIXs",
    "Library/Caches/pnpm",
    "Library/Caches/Homebrew",
    "Library/Caches/ms-playwright",
    "Library/Caches/electron",
]

# Roots summed for the cache size reported to the sync folder
CACHE_SIZE_ROOTS: list[str] = [
    "Library/Caches",
    "Library/Application Support/Code/Cache",
    "Library/Application Support/Code/CachedData",
]


def is_valid_cleanup_action(action: str) -> bool:
    """Check whether action names a known cache purge."""
    return isinstance(action, str) and action in CACHE_ACTIONS


def cache_action_paths(action: str, home: str) -> list[str]:
    """Absolute paths removed by a cache action (empty for unknown actions)."""
    home = home.rstrip("/")
    return [f"{home}/{rel}" for rel in CACHE_ACTIONS.get(action, [])]


def cleanup_all_paths(home: str) -> list[str]:
    """Absolute paths removed by a full cache purge."""
    home = home.rstrip("/")
    return [f"{home}/{rel}" for rel in CLEANUP_ALL_PATHS]
