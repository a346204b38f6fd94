import importlib.util
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


def load_module(script_path, module_name: Optional[str] = None):
    """Import a Python file (or a package's __init__.py) by path."""
    script_path = Path(script_path)
    if module_name is None:
        module_name = script_path.stem
    search_locations = None
    if script_path.name == "__init__.py":
        search_locations = [str(script_path.parent)]
    spec = importlib.util.spec_from_file_location(
        module_name, str(script_path), submodule_search_locations=search_locations
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from '{script_path}'")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def try_tqdm(iterable: Iterable, **kwargs):
    """Progress bar that stays quiet when stderr is not a terminal."""
    kwargs.setdefault("disable", not sys.stderr.isatty())
    return tqdm(iterable, **kwargs)
