"""Pydantic model persistence for the configuration file.

Loads and saves Pydantic models to/from JSON files. Low-level Pydantic/IO
errors are converted into LightGuideError exceptions with recovery hints.

Safety Features:
    - Automatic .bak backups before overwriting files
    - Atomic writes using temp file + rename
    - Never auto-saves over corrupted files
"""

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from lightguide.exceptions import (
    ConfigFileInvalidError,
    ConfigurationError,
    wrap_pydantic_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class PydanticPersistence:
    """
    Stateless load/save helpers for Pydantic models stored as JSON.

    All methods are static and thread-safe; they only operate on their
    parameters.
    """

    @staticmethod
    def load_json(path: Path, model_type: type[T]) -> T:
        """
        Load and validate a Pydantic model from a JSON file.

        Args:
            path: Path to the JSON file to load
            model_type: The Pydantic model class to validate against

        Returns:
            Validated model instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigFileInvalidError: If the JSON syntax is invalid
            ConfigValidationError: If the JSON content fails Pydantic validation
        """
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            json_content = path.read_text()

            if not json_content or not json_content.strip():
                raise ConfigFileInvalidError(str(path), "File is empty")

            model = model_type.model_validate_json(json_content)

            logger.debug(f"Loaded {model_type.__name__} from {path}")
            return model

        except ValidationError as e:
            logger.error(f"Validation error loading {model_type.__name__} from {path}: {e}")
            raise wrap_pydantic_error(e, str(path)) from e

        except ConfigurationError:
            raise

        except OSError as e:
            logger.error(f"Unexpected error loading {model_type.__name__} from {path}: {e}")
            raise ConfigFileInvalidError(str(path), f"Unexpected error: {e}") from e

    @staticmethod
    def save_json(
        data: BaseModel,
        path: Path,
        indent: int = 2,
        backup: bool = True,
    ) -> None:
        """
        Save a Pydantic model to a JSON file with backup and atomic write.

        Args:
            data: The Pydantic model instance to save
            path: Path where the file should be saved
            indent: JSON indentation level (default: 2 spaces)
            backup: Create .bak backup before overwriting existing file

        Raises:
            OSError: If the file cannot be written
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        if backup and path.exists():
            backup_path = path.with_suffix(path.suffix + ".bak")
            shutil.copy2(path, backup_path)
            logger.debug(f"Created backup: {backup_path}")

        json_content = data.model_dump_json(indent=indent)

        # Atomic write: write to temp file first, then rename
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(json_content, encoding="utf-8")
            temp_path.replace(path)
            logger.debug(f"Saved {type(data).__name__} to {path}")
        finally:
            if temp_path.exists():
                temp_path.unlink()

    @staticmethod
    def load_json_or_default(
        path: Path, model_type: type[T], default_factory: Callable[[], T] | None = None
    ) -> T:
        """
        Load a model from JSON, or return a default if the file doesn't exist.

        Only a missing file falls back to defaults. A file that exists but is
        broken raises, so the user sees what is wrong instead of silently
        running with defaults.

        Args:
            path: Path to the JSON file
            model_type: The Pydantic model class
            default_factory: Optional callable that returns a default instance

        Raises:
            ConfigFileInvalidError: If the file exists but has invalid JSON syntax
            ConfigValidationError: If the file exists but has invalid values
        """
        try:
            return PydanticPersistence.load_json(path, model_type)
        except FileNotFoundError:
            logger.info(f"File not found: {path}, using default {model_type.__name__}")
            if default_factory:
                return default_factory()
            return model_type()
