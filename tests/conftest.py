import importlib.util
import itertools
import sys

import pytest

_counter = itertools.count()


@pytest.fixture
def load_module(tmp_path):
    """Write generated source to tmp_path and import it under a fresh name."""
    loaded = []

    def _load(source: str):
        module_name = f"generated_wire_{next(_counter)}"
        path = tmp_path / f"{module_name}.py"
        path.write_text(source)
        spec = importlib.util.spec_from_file_location(module_name, path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        loaded.append(module_name)
        spec.loader.exec_module(module)
        return module

    yield _load

    for name in loaded:
        sys.modules.pop(name, None)
