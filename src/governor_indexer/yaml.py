"""Reading `governor.yaml` files.

Environment variables are substituted in raw text before parsing: `${NAME}` or `${NAME:-default}`.
Multiple files are merged first-level deep, later files win.
"""

from __future__ import annotations

import logging
import os
import re
from io import StringIO
from typing import TYPE_CHECKING
from typing import Any

from ruamel.yaml import YAML

from governor_indexer.exceptions import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

ENV_VARIABLE_REGEX = re.compile(r'\$\{(?P<name>\w+)(?::-(?P<default>.*?))?\}')

_logger = logging.getLogger(__name__)

_loader = YAML(typ='safe')
_dumper = YAML()
_dumper.default_flow_style = False
_dumper.indent(mapping=2, sequence=4, offset=2)


def substitute_env_variables(text: str, unsafe: bool) -> tuple[str, dict[str, str]]:
    """Replace placeholders with values; returns the new text and the values used.

    Unless `unsafe` is set, defaults are used and the actual environment is never read.
    """
    used: dict[str, str] = {}

    def _replace(match: re.Match[str]) -> str:
        name, default = match.group('name'), match.group('default')
        if unsafe:
            value = os.environ.get(name, default)
            # NOTE: Empty default is fine, missing default is not
            if value is None:
                raise ConfigurationError(f'Environment variable `{name}` is not set')
        else:
            value = default or ''
        used[name] = value
        return value

    return ENV_VARIABLE_REGEX.sub(_replace, text), used


def _read(path: Path) -> str:
    _logger.debug('Loading config file `%s`', path)
    try:
        lines = path.read_text().splitlines(keepends=True)
    except OSError as e:
        raise ConfigurationError(f'Config file `{path}` is not readable: {e}') from e
    # NOTE: Placeholders in comments are not config variables
    return ''.join(line for line in lines if not line.lstrip().startswith('#'))


def load_config_files(
    paths: list[Path],
    environment: bool = True,
    unsafe: bool = False,
) -> tuple[dict[str, Any], dict[str, str]]:
    config: dict[str, Any] = {}
    variables: dict[str, str] = {}

    for path in paths:
        text = _read(path)
        if environment:
            text, used = substitute_env_variables(text, unsafe)
            variables.update(used)
        config.update(_loader.load(text) or {})

    return config, variables


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list | tuple):
        return [_drop_none(v) for v in value if v is not None]
    return value


def dump(value: dict[str, Any]) -> str:
    buffer = StringIO()
    _dumper.dump(_drop_none(value), buffer)
    return buffer.getvalue()
