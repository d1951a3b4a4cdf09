"""
Environment Resolver - Runtime mode and connection string resolution

Reads the mode signal once at process entry, loads the dotenv file that
belongs to that mode and returns an immutable DatabaseEnvironment. The
result is passed explicitly to the identity validator and the gate.
"""

import os
from collections.abc import Callable, Mapping
from pathlib import Path

from dotenv import dotenv_values

from exceptions import ValidationException
from logging_config import logger
from models.guard import DatabaseEnvironment, RuntimeMode

MODE_VARIABLE = "ENVIRONMENT"
DATABASE_URL_VARIABLE = "DATABASE_URL"
TEST_DATABASE_URL_VARIABLE = "TEST_DATABASE_URL"

DEFAULT_SOURCES: dict[RuntimeMode, str] = {
    RuntimeMode.DEVELOPMENT: ".env",
    RuntimeMode.TEST: ".env.test",
    RuntimeMode.PRODUCTION: ".env",
}


def parse_runtime_mode(signal: str | None) -> RuntimeMode:
    """
    Map the mode signal to a RuntimeMode

    A missing or blank signal means development. Unknown values are rejected
    rather than guessed.
    """
    if signal is None or not signal.strip():
        return RuntimeMode.DEVELOPMENT
    try:
        return RuntimeMode(signal.strip().lower())
    except ValueError:
        allowed = ", ".join(mode.value for mode in RuntimeMode)
        raise ValidationException(
            field=MODE_VARIABLE,
            message=f"Unknown runtime mode '{signal}'. Expected one of: {allowed}",
        ) from None


def load_config(source_path: str | Path) -> dict[str, str]:
    """
    Read a dotenv file into a dictionary

    A missing file is not an error and yields an empty dictionary. Keys
    declared without a value are dropped.
    """
    path = Path(source_path)
    if not path.is_file():
        logger.debug(f"Config source {path} not found, skipping")
        return {}
    values = dotenv_values(path)
    return {key: value for key, value in values.items() if value is not None}


def _non_blank(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


class EnvironmentResolver:
    """Resolves the DatabaseEnvironment for the current process"""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        sources: Mapping[RuntimeMode, str | Path] | None = None,
        base_dir: str | Path | None = None,
        loader: Callable[[str | Path], Mapping[str, str]] = load_config,
    ):
        """
        Args:
            environ: Process variables, defaults to a snapshot of os.environ
            sources: Config file per runtime mode, defaults to DEFAULT_SOURCES
            base_dir: Directory relative source paths are resolved against
            loader: Function reading a config source into a mapping
        """
        self.environ = dict(os.environ if environ is None else environ)
        self.sources = dict(DEFAULT_SOURCES)
        if sources:
            self.sources.update(sources)
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.loader = loader

    def source_for(self, mode: RuntimeMode) -> Path:
        """Config file path for a runtime mode"""
        path = Path(self.sources[mode])
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def resolve(self) -> DatabaseEnvironment:
        mode = parse_runtime_mode(self.environ.get(MODE_VARIABLE))
        source = self.source_for(mode)
        file_values = dict(self.loader(source))

        # Test config wins over the shell so a development DATABASE_URL
        # exported in the terminal cannot leak into a test run.
        if mode == RuntimeMode.TEST:
            merged = {**self.environ, **file_values}
        else:
            merged = {**file_values, **self.environ}

        database_url = _non_blank(merged.get(DATABASE_URL_VARIABLE))
        test_database_url = _non_blank(merged.get(TEST_DATABASE_URL_VARIABLE))

        if mode == RuntimeMode.TEST:
            connection = test_database_url or database_url
        else:
            connection = database_url

        environment = DatabaseEnvironment(
            mode=mode,
            connection=connection,
            test_connection=test_database_url,
            source=str(source) if file_values else None,
        )
        logger.debug(
            f"Resolved environment: mode={mode.value}, "
            f"connection={environment.redacted_connection}, source={environment.source}"
        )
        return environment


def resolve_environment(
    environ: Mapping[str, str] | None = None,
    sources: Mapping[RuntimeMode, str | Path] | None = None,
    base_dir: str | Path | None = None,
) -> DatabaseEnvironment:
    """Shortcut for EnvironmentResolver(...).resolve()"""
    return EnvironmentResolver(environ=environ, sources=sources, base_dir=base_dir).resolve()
