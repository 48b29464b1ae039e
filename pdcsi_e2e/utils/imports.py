import functools
import importlib


def _import(module: str, err_msg: str):
    try:
        return importlib.import_module(module)
    except ImportError as e:
        # try the "from x import y" syntax
        parent, _, attr = module.rpartition(".")
        if not parent:
            raise ImportError(err_msg) from e
        try:
            return getattr(importlib.import_module(parent), attr)
        except (ImportError, AttributeError):
            raise ImportError(err_msg) from e


def inject(*modules, pip_package=None):
    """
    Decorator that imports Google client libraries on first call
    @inject("googleapiclient.discovery")
    def build_client(discovery, credentials):
        return discovery.build("compute", "v1", credentials=credentials)
    """

    def wrapper(fn):
        @functools.wraps(fn)
        def wrapped(*args, **kwargs):
            imported = []
            for module in modules:
                err_msg = f"Cannot import {module}."
                if pip_package:
                    err_msg += f" Install it with `pip install {pip_package}`"
                imported.append(_import(module, err_msg))
            return fn(*imported, *args, **kwargs)

        return wrapped

    return wrapper
