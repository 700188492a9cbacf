import tomllib
from pathlib import Path
from typing import Annotated

from msgspec import ValidationError, convert
from typing_extensions import Doc

from jsonfunc.errors import ConfigError
from jsonfunc.interface import Record, StrDict
from jsonfunc.problems import ErrorFormat


class ConfigBase(Record, forbid_unknown_fields=True, frozen=True): ...


class HandlerConfig(ConfigBase, kw_only=True):
    to_thread: Annotated[
        bool, Doc("Run sync functions in a worker thread instead of the event loop")
    ] = True
    precise_numbers: Annotated[
        bool,
        Doc(
            "Decode untyped json numbers with arbitrary precision and encode Decimal as json numbers"
        ),
    ] = True
    strict: Annotated[
        bool, Doc("Reject json values that only match the declared type after coercion")
    ] = True
    error_format: Annotated[
        ErrorFormat,
        Doc("Render unhandled errors as plain text or as application/problem+json"),
    ] = "text"

    @classmethod
    def from_toml(cls, file_path: Path) -> StrDict:
        with open(file_path, "rb") as fp:
            toml = tomllib.load(fp)

        try:
            config: StrDict = toml["tool"]["jsonfunc"]
        except KeyError:
            try:
                config = toml["jsonfunc"]
            except KeyError:
                raise ConfigError(f"can't find table jsonfunc from {file_path}")
        return config


def config_from_file(
    config_file: Path | str, *, config_type: type[HandlerConfig] = HandlerConfig
) -> HandlerConfig:
    file_path = Path(config_file) if isinstance(config_file, str) else config_file
    if file_path.suffix != ".toml":
        raise ConfigError(f"Unsupported config file {file_path}, expected a .toml file")

    config_dict = config_type.from_toml(file_path)
    try:
        return convert(config_dict, config_type)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {file_path}: {exc}") from exc


DEFAULT_CONFIG = HandlerConfig()


def config_registry():
    _config: HandlerConfig = DEFAULT_CONFIG

    def _set_config(
        config: HandlerConfig | None = None, *, config_file: str | Path | None = None
    ) -> None:
        """
        Set the config used by handlers created without an explicit one.

        Passing nothing resets to the defaults.
        """
        if config is not None and config_file is not None:
            raise ConfigError(
                "Can't set both config_file and config, choose either one of them"
            )

        nonlocal _config
        if config_file is not None:
            _config = config_from_file(config_file)
        elif config is not None:
            _config = config
        else:
            _config = DEFAULT_CONFIG

    def _get_config() -> HandlerConfig:
        return _config

    return _set_config, _get_config


set_config, get_config = config_registry()
