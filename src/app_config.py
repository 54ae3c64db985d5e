"""
Application settings loaded from config.ini.

Example config.ini:
    [Storage]
    DataDir = ~/.cottonlog

    [Matching]
    Threshold = 0.3

    [Workflow]
    RecompletePolicy = reject
    ManualDuplicatePolicy = allow

    [Assessment]
    Model = gemini-2.5-flash

    [Labels]
    Dpi = 203
"""
import os
import configparser
from dataclasses import dataclass
from pathlib import Path

from logger import get_logger, DEFAULT_DATA_DIR
from exceptions import ValidationError

logger = get_logger(__name__)

RECOMPLETE_REJECT = 'reject'
RECOMPLETE_OVERWRITE = 'overwrite'
RECOMPLETE_POLICIES = (RECOMPLETE_REJECT, RECOMPLETE_OVERWRITE)

DUPLICATES_ALLOW = 'allow'
DUPLICATES_REJECT = 'reject'
DUPLICATE_POLICIES = (DUPLICATES_ALLOW, DUPLICATES_REJECT)

DEFAULT_MATCH_THRESHOLD = 0.3


@dataclass
class AppSettings:
    """
    Resolved application settings.

    Attributes:
        data_dir: Root directory for sessions and logs
        sessions_dir: Directory holding one JSON snapshot per session
        match_threshold: Fuzzy search cut-off, 0 (exact) to 1 (anything)
        recomplete_policy: What to do when an inventory bale is completed twice
        manual_duplicate_policy: Whether manual sessions accept a repeated id
        assessment_model: Gemini model used for quality assessments
        assessment_temperature: Sampling temperature for assessments
        assessment_max_tokens: Output token cap for assessments
        label_dpi / label_width_mm / label_height_mm / label_font_size:
            Bale tag label geometry for thermal printers
    """
    data_dir: Path = DEFAULT_DATA_DIR
    sessions_dir: Path = DEFAULT_DATA_DIR / "sessions"
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    recomplete_policy: str = RECOMPLETE_REJECT
    manual_duplicate_policy: str = DUPLICATES_ALLOW
    assessment_model: str = 'gemini-2.5-flash'
    assessment_temperature: float = 0.3
    assessment_max_tokens: int = 300
    label_dpi: int = 203
    label_width_mm: float = 65
    label_height_mm: float = 35
    label_font_size: int = 32


def _read_config(config_path: str) -> configparser.ConfigParser:
    config = configparser.ConfigParser()

    if not Path(config_path).exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return config

    config.read(config_path, encoding='utf-8')
    logger.info(f"Configuration loaded from {config_path}")
    return config


def load_settings(config_path: str = "config.ini") -> AppSettings:
    """
    Load settings from config.ini, falling back to defaults for missing keys.

    Args:
        config_path: Path to config.ini

    Returns:
        AppSettings with every field resolved

    Raises:
        ValidationError: If a value is present but invalid
    """
    config = _read_config(config_path)

    try:
        data_dir = Path(os.path.expanduser(
            config.get('Storage', 'DataDir', fallback=str(DEFAULT_DATA_DIR))
        ))
        sessions_dir = config.get('Storage', 'SessionsDir', fallback='')
        settings = AppSettings(
            data_dir=data_dir,
            sessions_dir=Path(os.path.expanduser(sessions_dir)) if sessions_dir else data_dir / "sessions",
            match_threshold=config.getfloat('Matching', 'Threshold', fallback=DEFAULT_MATCH_THRESHOLD),
            recomplete_policy=config.get('Workflow', 'RecompletePolicy', fallback=RECOMPLETE_REJECT).strip().lower(),
            manual_duplicate_policy=config.get('Workflow', 'ManualDuplicatePolicy', fallback=DUPLICATES_ALLOW).strip().lower(),
            assessment_model=config.get('Assessment', 'Model', fallback='gemini-2.5-flash'),
            assessment_temperature=config.getfloat('Assessment', 'Temperature', fallback=0.3),
            assessment_max_tokens=config.getint('Assessment', 'MaxOutputTokens', fallback=300),
            label_dpi=config.getint('Labels', 'Dpi', fallback=203),
            label_width_mm=config.getfloat('Labels', 'WidthMm', fallback=65),
            label_height_mm=config.getfloat('Labels', 'HeightMm', fallback=35),
            label_font_size=config.getint('Labels', 'FontSize', fallback=32),
        )
    except ValueError as e:
        logger.error(f"Invalid value in {config_path}: {e}")
        raise ValidationError(f"Invalid value in {config_path}: {e}")

    validate_settings(settings)
    return settings


def validate_settings(settings: AppSettings) -> None:
    """Raise ValidationError if any setting is out of its allowed range."""
    if not 0.0 <= settings.match_threshold <= 1.0:
        raise ValidationError(f"Matching threshold must be between 0 and 1, got {settings.match_threshold}")
    if settings.recomplete_policy not in RECOMPLETE_POLICIES:
        raise ValidationError(
            f"RecompletePolicy must be one of {', '.join(RECOMPLETE_POLICIES)}, "
            f"got '{settings.recomplete_policy}'"
        )
    if settings.manual_duplicate_policy not in DUPLICATE_POLICIES:
        raise ValidationError(
            f"ManualDuplicatePolicy must be one of {', '.join(DUPLICATE_POLICIES)}, "
            f"got '{settings.manual_duplicate_policy}'"
        )
    if settings.label_dpi <= 0 or settings.label_width_mm <= 0 or settings.label_height_mm <= 0:
        raise ValidationError("Label dimensions must be positive")
