import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import litdoc` works
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from litdoc.config import Settings  # noqa: E402
from litdoc.structure import _default_cache  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep every test away from the user's configuration and temp dir."""
    monkeypatch.setenv("LITDOC_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("LITDOC_TEMP_DIR", str(tmp_path / "scratch"))
    monkeypatch.delenv("LITDOC_TIMEOUT", raising=False)
    _default_cache.clear()
    yield


@pytest.fixture
def settings(tmp_path):
    return Settings(config_dir=tmp_path / "config", temp_dir=tmp_path / "scratch")


SETUP_DOC = """# Setup

```sh setup
echo hi
```
"""


@pytest.fixture
def setup_doc():
    """Block 'setup' spans lines 3-5 and prints 'hi'."""
    return SETUP_DOC
