import os
import sys
import tempfile
from pathlib import Path

import pytest
import yaml

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

RULE_DATA_PATH = project_root / "config" / "rule_data.yaml"


@pytest.fixture
def test_env_file():
    """Create a temporary .env file for testing."""
    with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".env") as f:
        f.write("DEFAULT_PROVIDER_CATEGORY=speed-optimized\n")
        f.write("DEFAULT_CHAT_MODE=discuss\n")
        f.write("DEFAULT_CWD=/workspace/app\n")
        f.write("BENCHMARK_HISTORY_LIMIT=50\n")
        f.write("TREND_WINDOW=4\n")
        f.write("LOG_LEVEL=DEBUG\n")
        f.write("LOG_FILE_PATH=test/logs/engine.log\n")
        temp_path = f.name

    yield temp_path

    # Cleanup
    os.unlink(temp_path)


@pytest.fixture(scope="session")
def kb():
    """The shipped rule knowledge base, loaded once per session."""
    from src.knowledge_base.loader import load_knowledge_base

    return load_knowledge_base(RULE_DATA_PATH)


@pytest.fixture
def rule_data():
    """Raw rule document, for tests that build broken variants of it."""
    with open(RULE_DATA_PATH, encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def write_rule_data(tmp_path):
    """Write a rule document to a temporary YAML file and return its path."""

    def _write(data) -> Path:
        path = tmp_path / "rule_data.yaml"
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        return path

    return _write


@pytest.fixture
def assembler(kb):
    from src.assembler.prompt_assembler import PromptAssembler

    return PromptAssembler(kb)
