import sys
from pathlib import Path

# Ensure repo root is on sys.path so `import olnode` works under all pytest import modes.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from olnode.node.keygen import wallet_from_mnemonic  # noqa: E402

MNEMONIC = "legal winner thank year wave sausage worth useful legal winner thank yellow"
WAYPOINT = "0:" + "ab" * 32


@pytest.fixture
def wallet():
    return wallet_from_mnemonic(MNEMONIC)


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch):
    # Nothing under test may touch the real ~/.0L.
    monkeypatch.setenv("OL_HOME", str(tmp_path / "ol-home"))
    monkeypatch.delenv("OL_CONFIG_PATH", raising=False)
    monkeypatch.delenv("OL_MNEMONIC", raising=False)
