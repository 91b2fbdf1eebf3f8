import inspect
from unittest.mock import patch

import pytest
import uvicorn

import run
from receptionist import main


def test_server_launch_arguments_are_accepted_by_uvicorn():
    """Test that the launcher only passes options uvicorn.run understands"""
    with patch.object(run.settings, "OPENAI_API_KEY", "sk-test"), \
            patch("sys.argv", ["run.py", "--port", "6060"]), \
            patch("run.uvicorn.run") as mock_run:
        run.main()

    args, kwargs = mock_run.call_args
    assert args == ("receptionist.main:app",)
    assert kwargs["port"] == 6060
    accepted = inspect.signature(uvicorn.run).parameters
    assert set(kwargs) <= set(accepted)


def test_launcher_requires_openai_key():
    with patch.object(run.settings, "OPENAI_API_KEY", None), \
            patch("sys.argv", ["run.py"]), \
            patch("run.uvicorn.run") as mock_run:
        with pytest.raises(SystemExit):
            run.main()

    mock_run.assert_not_called()


def test_app_module_is_not_a_launcher():
    """The app module only builds the app; run.py starts the server"""
    assert "uvicorn" not in vars(main)


def test_cli_log_level_reaches_service_logger():
    with patch.object(run.settings, "OPENAI_API_KEY", "sk-test"), \
            patch("sys.argv", ["run.py", "--log-level", "DEBUG"]), \
            patch("run.configure_logging") as mock_configure, \
            patch("run.uvicorn.run") as mock_run:
        run.main()

    mock_configure.assert_called_once_with("DEBUG")
    assert mock_run.call_args.kwargs["log_level"] == "debug"
