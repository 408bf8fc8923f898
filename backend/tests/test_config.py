"""Tests for settings and logging setup."""

import os
import subprocess
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent


def import_in_fresh_interpreter(module):
    """Import a module in a new interpreter and return what it wrote to stderr."""
    env = dict(os.environ, LOG_LEVEL="INFO", GEMINI_API_KEY="", PYTHONPATH=str(BACKEND_DIR))
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=BACKEND_DIR,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
    return result.stderr


class TestLoggingSetup:
    """Logging is configured as soon as the settings are loaded."""

    def test_config_import_configures_logging(self):
        stderr = import_in_fresh_interpreter("app.config")
        assert "Logging configured at INFO level" in stderr

    def test_service_startup_is_logged(self):
        """Should emit the service initialization records when the app is imported."""
        stderr = import_in_fresh_interpreter("app.main")
        assert "SkinAnalyzer initialized" in stderr
        assert "app.services.match_scorer" in stderr
