"""
Pytest configuration and fixtures
"""
import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.config import Settings  # noqa: E402
from src.index import create_app  # noqa: E402

FAKE_CLI_SOURCE = '''
import json
import sys
import time
from pathlib import Path

here = Path(__file__).parent
config = json.loads((here / "fake_cli.json").read_text())
args = sys.argv[1:]
action = args[0] if args else ""
behaviour = config.get(action, {})

sketch_dir = Path(args[-1]) if len(args) > 1 else None
sketch_file = sketch_dir / (sketch_dir.name + ".ino") if sketch_dir else None
record = {
    "args": args,
    "sketch": sketch_file.read_text() if sketch_file and sketch_file.is_file() else None,
}
with open(here / "calls.log", "a") as log:
    log.write(json.dumps(record) + "\\n")

if behaviour.get("sleep"):
    time.sleep(behaviour["sleep"])

if action == "compile" and "--output-dir" in args and behaviour.get("artifact") is not None:
    out = Path(args[args.index("--output-dir") + 1])
    out.mkdir(parents=True, exist_ok=True)
    (out / (sketch_dir.name + ".ino.bin")).write_bytes(behaviour["artifact"].encode())

sys.stdout.write(behaviour.get("stdout", ""))
sys.stderr.write(behaviour.get("stderr", ""))
sys.exit(behaviour.get("exit", 0))
'''


class FakeCli:
    """Stand-in for arduino-cli that records every invocation."""

    def __init__(self, directory: Path):
        self.directory = directory
        self.script = directory / "fake_cli.py"
        self.script.write_text(FAKE_CLI_SOURCE)
        self.configure()

    @property
    def command(self):
        return [sys.executable, str(self.script)]

    def configure(self, compile=None, upload=None):
        config = {
            "compile": {"stdout": "Sketch uses 924 bytes.\n", "exit": 0},
            "upload": {"stdout": "Upload complete.\n", "exit": 0},
        }
        if compile is not None:
            config["compile"] = compile
        if upload is not None:
            config["upload"] = upload
        (self.directory / "fake_cli.json").write_text(json.dumps(config))
        return self

    def calls(self, action=None):
        log = self.directory / "calls.log"
        if not log.exists():
            return []
        records = [json.loads(line) for line in log.read_text().splitlines() if line]
        if action is None:
            return records
        return [r for r in records if r["args"] and r["args"][0] == action]


@pytest.fixture
def fake_cli(tmp_path):
    directory = tmp_path / "toolchain"
    directory.mkdir()
    return FakeCli(directory)


@pytest.fixture
def temp_root(tmp_path):
    return tmp_path / "temp"


@pytest.fixture
def settings(tmp_path, temp_root, fake_cli):
    return Settings(
        temp_dir=temp_root,
        static_dir=tmp_path / "public",
        cli_command=fake_cli.command,
        compile_timeout=30,
        upload_timeout=30,
    )


@pytest.fixture
def client(settings):
    """Test client bound to an app using the fake toolchain."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def leftover_dirs(temp_root):
    """Callable listing per-request directories still present under the temp root."""

    def _list():
        if not temp_root.exists():
            return []
        return list(temp_root.iterdir())

    return _list
