"""Test factory for Settings.

Provides :func:`make_settings` — creates
:class:`~watchrate._settings.Settings` instances without depending on
``.env`` files or real environment variables.
"""

from __future__ import annotations

from typing import Any

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from watchrate._settings import Settings


class _IsolatedSettings(Settings):
    """Settings subclass that ignores all ambient configuration sources."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],  # noqa: ARG003
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)


def make_settings(**overrides: Any) -> Settings:
    """Create a ``Settings`` instance with in-memory storage.

    Only model defaults plus *overrides* are used; ``os.environ`` and
    ``.env`` files are ignored.  Storage defaults to an in-memory
    SQLite URL and the time source to the system clock, so nothing
    touches disk or network unless a test asks for it.

    Example::

        settings = make_settings()
        assert settings.storage.url == "sqlite://"

        from watchrate._settings import LoggingSettings
        custom = make_settings(logging=LoggingSettings(level="DEBUG"))
    """
    overrides.setdefault("storage", {"url": "sqlite://"})
    overrides.setdefault("time_source", {"kind": "system"})
    # _env_file isn't part of the generated __init__ signature
    return _IsolatedSettings(_env_file=None, **overrides)  # type: ignore[call-arg]
