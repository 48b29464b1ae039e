import functools
import os
from pathlib import Path


__config_root__ = Path("~/.pdcsi_e2e").expanduser()


@functools.lru_cache(maxsize=None)
def load_config_path() -> Path:
    if "PDCSI_E2E_CONFIG" in os.environ:
        return Path(os.environ["PDCSI_E2E_CONFIG"]).expanduser()
    return __config_root__ / "config"


def load_e2e_config(path=None, env_overrides=True):
    from pdcsi_e2e.config import E2EConfig

    path = Path(path) if path is not None else load_config_path()
    if path.exists():
        config = E2EConfig.load_config(path)
    else:
        config = E2EConfig.default_config()
    return config.with_env_overrides() if env_overrides else config
