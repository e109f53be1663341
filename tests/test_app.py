import os
import signal
import threading

import pytest

from gotenberg import modules
from gotenberg.app import main
from gotenberg.cancellation import CancelScope
from gotenberg.flags import FlagSet
from gotenberg.modules import ModuleDescriptor, register_module


@pytest.fixture(autouse=True)
def empty_registry(monkeypatch):
    monkeypatch.setattr(modules, "_descriptors", {})


class _AppModule:
    def __init__(self, mod_id, start_error=None, stop_error=None, message=""):
        self.mod_id = mod_id
        self.start_error = start_error
        self.stop_error = stop_error
        self.message = message
        self.started = False
        self.stop_scopes = []

    def descriptor(self):
        return ModuleDescriptor(id=self.mod_id, new=lambda: self)

    def start(self):
        if self.start_error:
            raise RuntimeError(self.start_error)
        self.started = True

    def startup_message(self):
        return self.message

    def stop(self, scope):
        self.stop_scopes.append(scope)
        if self.stop_error:
            raise RuntimeError(self.stop_error)


class _LoggerModule:
    def __init__(self, mod_id, messages):
        self.mod_id = mod_id
        self.messages = messages

    def descriptor(self):
        return ModuleDescriptor(id=self.mod_id, new=lambda: self)

    def system_messages(self):
        return list(self.messages)


class _BadModule:
    def descriptor(self):
        return ModuleDescriptor(id="bad", new=lambda: self)

    def provision(self, ctx):
        raise RuntimeError("nope")

    def start(self):
        pass

    def startup_message(self):
        return ""

    def stop(self, scope):
        pass


class _FlaggedModule:
    def descriptor(self):
        flag_set = FlagSet("flagged")
        flag_set.add_string("flagged-value", "x", "")
        return ModuleDescriptor(id="flagged", flag_set=flag_set, new=lambda: self)


def _terminate_later(delay=0.5):
    timer = threading.Timer(delay, os.kill, (os.getpid(), signal.SIGTERM))
    timer.start()
    return timer


def test_banner_and_unknown_flag(capsys):
    assert main(["--nope"]) == 1
    out = capsys.readouterr().out
    assert "Version: snapshot" in out
    assert "unknown flag: --nope" in out


def test_modules_listed_in_order(capsys):
    register_module(_AppModule("b_app"))
    register_module(_AppModule("a_app"))
    assert main(["--unknown"]) == 1
    assert "[SYSTEM] modules: a_app b_app \n" in capsys.readouterr().out


def test_module_flags_are_accepted(capsys):
    register_module(_FlaggedModule())
    timer = _terminate_later()
    try:
        assert main(["--flagged-value=y"]) == 0
    finally:
        timer.cancel()
    assert "[SYSTEM] graceful shutdown of 30s" in capsys.readouterr().out


def test_start_and_graceful_stop(capsys):
    app = _AppModule("a_app")
    register_module(app)
    timer = _terminate_later()
    try:
        assert main([]) == 0
    finally:
        timer.cancel()
    out = capsys.readouterr().out
    assert app.started is True
    assert len(app.stop_scopes) == 1
    assert isinstance(app.stop_scopes[0], CancelScope)
    assert "[SYSTEM] a_app: application started" in out
    assert "[SYSTEM] a_app: application stopped" in out
    assert "[SYSTEM] graceful shutdown of 30s" in out


def test_custom_startup_message_and_duration(capsys):
    register_module(_AppModule("a_app", message="listening"))
    timer = _terminate_later()
    try:
        assert main(["--gotenberg-graceful-shutdown-duration=1m30s"]) == 0
    finally:
        timer.cancel()
    out = capsys.readouterr().out
    assert "[SYSTEM] a_app: listening" in out
    assert "[SYSTEM] graceful shutdown of 1m30s" in out


def test_system_messages(capsys):
    register_module(_LoggerModule("logs", ["hello", "world"]))
    timer = _terminate_later()
    try:
        assert main([]) == 0
    finally:
        timer.cancel()
    out = capsys.readouterr().out
    assert "[SYSTEM] logs: hello" in out
    assert "[SYSTEM] logs: world" in out


def test_stop_failure(capsys):
    register_module(_AppModule("a_app", stop_error="boom"))
    timer = _terminate_later()
    try:
        assert main([]) == 1
    finally:
        timer.cancel()
    assert "[FATAL] stopping a_app: boom" in capsys.readouterr().out


def test_start_failure(capsys):
    app = _AppModule("a_app", start_error="boom")
    register_module(app)
    assert main([]) == 1
    out = capsys.readouterr().out
    assert "[FATAL] starting a_app: boom" in out
    assert app.stop_scopes == []


def test_provision_failure(capsys):
    register_module(_BadModule())
    assert main([]) == 1
    out = capsys.readouterr().out
    assert "[FATAL] provision module bad: nope" in out


def test_invalid_shutdown_duration(capsys):
    assert main(["--gotenberg-graceful-shutdown-duration=soon"]) == 1
    assert "gotenberg-graceful-shutdown-duration" in capsys.readouterr().out