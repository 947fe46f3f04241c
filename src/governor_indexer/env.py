from os import getenv
from pathlib import Path
import platform


def dump() -> dict[str, str]:
    result: dict[str, str] = {}
    for key in globals().keys():
        if key.isupper():
            result[key] = getenv(f'GOVERNOR_{key}') or ''
    return result


def get_bool(key: str) -> bool:
    return (getenv(key) or '').lower() in ('1', 'y', 'yes', 't', 'true', 'on')


def set_test() -> None:
    global TEST
    TEST = True


CI: bool = get_bool('GOVERNOR_CI')
DEBUG: bool = get_bool('GOVERNOR_DEBUG')
DOCKER: bool = get_bool('GOVERNOR_DOCKER')
JSON_LOG: bool = get_bool('GOVERNOR_JSON_LOG')
TEST: bool = get_bool('GOVERNOR_TEST')

if getenv('CI') == 'true':
    CI = True
if platform.system() == 'Linux' and Path('/.dockerenv').exists():
    DOCKER = True
