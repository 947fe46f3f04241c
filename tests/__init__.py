from pathlib import Path

from governor_indexer import env

env.set_test()


TEST_CONFIGS = Path(__file__).parent / 'configs'
