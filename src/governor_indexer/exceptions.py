"""Exceptions of the indexer.

`FrameworkException` means a broken internal invariant. `Error` subclasses are known failures caused by
config, node or data; the CLI prints their `help()` after the traceback.
"""

import textwrap
from dataclasses import dataclass
from typing import Any

_SEPARATOR = '_' * 80


class FrameworkException(AssertionError, RuntimeError):
    pass


class Error(FrameworkException):
    """Known failure of the indexer"""

    def __str__(self) -> str:
        return f'{self.__doc__} -> {" ".join(str(a) for a in self.args)}'

    def help(self) -> str:
        return f'{_SEPARATOR}\n\n{textwrap.dedent(self._help()).strip()}\n'

    def _help(self) -> str:
        raise NotImplementedError

    @staticmethod
    def default_help() -> str:
        return f'{_SEPARATOR}\n\nUnexpected error; attach the traceback above when reporting the issue.\n'


@dataclass(repr=False)
class ConfigurationError(Error):
    """Config is invalid"""

    msg: str

    def __post_init__(self) -> None:
        self.args = (self.msg,)

    def _help(self) -> str:
        return f"""
            {self.msg}

            See `governor.yaml` example in the project README.
        """


@dataclass(repr=False)
class DatasourceError(Error):
    """Node returned an error"""

    msg: str
    datasource: str

    def __post_init__(self) -> None:
        self.args = (self.msg, self.datasource)

    def _help(self) -> str:
        return f"""
            `{self.datasource}` returned an error: {self.msg}

            Make sure that the node URL is correct and the node is fully synced.
            State reads of past blocks require an archive node.
        """


@dataclass(repr=False)
class InvalidDataError(Error):
    """Failed to decode event log into a typed payload"""

    msg: str
    type_: type[Any]
    data: Any

    def __post_init__(self) -> None:
        self.args = (self.msg,)

    def _help(self) -> str:
        return f"""
            Log can't be decoded as `{self.type_.__name__}`: {self.msg}

            Data: `{self.data}`

            Make sure that `governor.address` points to a Governor contract.
        """
