import os
from pathlib import Path

os.environ.setdefault("AYUSKEY_SETTINGS_PATH", str(Path(__file__).parent / "tests" / "_pytest_settings.toml"))
for _name in ("AYUSKEY_ORIGIN", "AYUSKEY_TOKEN", "AYUSKEY_TIMEOUT", "AYUSKEY_LOG_LEVEL"):
    os.environ.pop(_name, None)
