"""
Persisted user settings.

The store is a one-section INI file kept next to the working directory:

    [Settings]
    SingleWorkbook = False
    CreatePivot = True
    EnableLogging = True
    DarkMode = False
    FolderPath = D:\\Logs\\W3SVC1

Loading never raises: a missing file gives the defaults, an unreadable or
malformed one gives the defaults plus a ``settings_io_failure`` issue.
"""

from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass, fields
from pathlib import Path

from iislogs_to_excel.constants import SETTINGS_FILE
from iislogs_to_excel.taxonomy import SETTINGS_IO_FAILURE, Issue

logger = logging.getLogger(__name__)

SECTION = "Settings"

# dataclass field -> INI key
INI_KEYS = {
    "single_workbook": "SingleWorkbook",
    "create_pivot": "CreatePivot",
    "enable_logging": "EnableLogging",
    "dark_mode": "DarkMode",
    "folder_path": "FolderPath",
}


@dataclass
class Settings:
    single_workbook: bool = False
    create_pivot: bool = False
    enable_logging: bool = False
    dark_mode: bool = False
    folder_path: str = ""


def default_settings_path() -> Path:
    return Path.cwd() / SETTINGS_FILE


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep PascalCase keys
    return parser


def load_settings(path: Path | None = None) -> tuple[Settings, list[Issue]]:
    path = Path(path) if path else default_settings_path()
    settings = Settings()
    if not path.exists():
        return settings, []

    parser = _new_parser()
    try:
        with path.open("r", encoding="utf-8") as handle:
            parser.read_file(handle)
    except (OSError, UnicodeDecodeError, configparser.Error) as exc:
        message = f"Could not read settings from {path}: {exc}"
        logger.warning(message)
        return Settings(), [Issue(SETTINGS_IO_FAILURE, message)]

    if not parser.has_section(SECTION):
        return settings, []

    issues: list[Issue] = []
    section = parser[SECTION]
    for item in fields(Settings):
        key = INI_KEYS[item.name]
        if key not in section:
            continue
        if item.type in (bool, "bool"):
            try:
                value = section.getboolean(key)
            except ValueError:
                message = f"Ignoring invalid value {section[key]!r} for {key} in {path}"
                logger.warning(message)
                issues.append(Issue(SETTINGS_IO_FAILURE, message))
                continue
        else:
            value = section[key].strip()
        setattr(settings, item.name, value)
    return settings, issues


def save_settings(settings: Settings, path: Path | None = None) -> tuple[bool, list[Issue]]:
    path = Path(path) if path else default_settings_path()
    parser = _new_parser()
    parser[SECTION] = {}
    for item in fields(Settings):
        value = getattr(settings, item.name)
        parser[SECTION][INI_KEYS[item.name]] = str(value)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            parser.write(handle)
    except OSError as exc:
        message = f"Could not write settings to {path}: {exc}"
        logger.warning(message)
        return False, [Issue(SETTINGS_IO_FAILURE, message)]
    return True, []


def reset_settings(path: Path | None = None) -> tuple[Settings, list[Issue]]:
    settings = Settings()
    _, issues = save_settings(settings, path)
    return settings, issues
