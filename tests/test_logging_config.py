import logging

from checkout_bridge import logging_config


def test_httpx_is_quieted(monkeypatch):
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: None)
    logging_config.setup_logging(log_file="")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_file_handler_only_when_requested(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setenv("LOG_FILE", "")
    logging_config.setup_logging()
    logging_config.setup_logging(log_file=str(tmp_path / "bridge.log"))

    stdout_only, with_file = (call["handlers"] for call in calls)
    assert [type(h) for h in stdout_only] == [logging.StreamHandler]
    assert isinstance(with_file[1], logging.FileHandler)
    with_file[1].close()
