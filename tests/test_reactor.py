"""Tests for reactor loading and dispatch."""

import sys
import textwrap
import types
from dataclasses import replace

import pytest

from apphost.models import ReactorEvent
from apphost.reactor import (
    FunctionReactor,
    Reactor,
    ReactorDispatcher,
    ReactorLoadError,
    find_reactor,
    install_search_paths,
    load_reactor,
    resolve_module,
)
from apphost.stats import TailStats
from conftest import make_event


@pytest.fixture()
def isolated_imports(monkeypatch, tmp_path):
    """Restore sys.path and forget modules imported during the test."""
    monkeypatch.setattr(sys, "path", list(sys.path))
    monkeypatch.chdir(tmp_path)
    before = set(sys.modules)
    yield tmp_path
    for name in set(sys.modules) - before:
        del sys.modules[name]


def _write(path, source: str):
    path.write_text(textwrap.dedent(source))
    return path


class RecordingReactor(Reactor):
    def __init__(self, fail_on=()):
        self.received: list[ReactorEvent] = []
        self._fail_on = set(fail_on)

    def handle(self, event):
        if event.id in self._fail_on:
            raise RuntimeError(f"cannot handle {event.id}")
        self.received.append(event)


class TestResolveModule:
    def test_module_name(self, isolated_imports):
        name, paths = resolve_module("my_reactor")
        assert name == "my_reactor"
        assert paths == [str(isolated_imports)]

    def test_file_path(self, isolated_imports):
        plugin_dir = isolated_imports / "plugins"
        plugin_dir.mkdir()
        path = _write(plugin_dir / "alerts.py", "")

        name, paths = resolve_module(str(path))

        assert name == "alerts"
        assert paths == [str(plugin_dir), str(isolated_imports)]


class TestInstallSearchPaths:
    def test_prepends_in_order_without_duplicates(self, isolated_imports):
        install_search_paths(["/a", "/b"])
        install_search_paths(["/a"])
        assert sys.path[:2] == ["/a", "/b"]
        assert sys.path.count("/a") == 1


class TestFindReactor:
    def test_subclass(self):
        module = types.ModuleType("m")
        module.Reactor = Reactor

        class Mine(Reactor):
            def handle(self, event):
                pass

        Mine.__module__ = "m"
        module.Mine = Mine
        assert isinstance(find_reactor(module), Mine)

    def test_reactor_object(self):
        module = types.ModuleType("m")
        module.reactor = RecordingReactor()
        assert find_reactor(module) is module.reactor

    def test_handle_function(self):
        module = types.ModuleType("m")
        module.handle = lambda event: None
        assert isinstance(find_reactor(module), FunctionReactor)

    def test_abstract_subclass_is_skipped(self):
        module = types.ModuleType("m")

        class Partial(Reactor):
            pass

        Partial.__module__ = "m"
        module.Partial = Partial
        module.handle = lambda event: None
        assert isinstance(find_reactor(module), FunctionReactor)

    def test_nothing_exposed(self):
        with pytest.raises(ReactorLoadError, match="exposes no"):
            find_reactor(types.ModuleType("m"))


class TestLoadReactor:
    def test_load_from_file_with_sibling_import(self, isolated_imports):
        plugin_dir = isolated_imports / "plugins"
        plugin_dir.mkdir()
        _write(plugin_dir / "alert_helpers.py", """
            PREFIX = "alert:"
        """)
        path = _write(plugin_dir / "alert_reactor.py", """
            from apphost.reactor import Reactor
            from alert_helpers import PREFIX

            class AlertReactor(Reactor):
                def __init__(self):
                    self.seen = []

                def handle(self, event):
                    self.seen.append(PREFIX + event.id)
        """)

        reactor = load_reactor(str(path))
        reactor.handle(types.SimpleNamespace(id="e1"))

        assert type(reactor).__name__ == "AlertReactor"
        assert reactor.seen == ["alert:e1"]

    def test_load_by_name_from_cwd(self, isolated_imports):
        _write(isolated_imports / "cwd_reactor.py", """
            calls = []

            def handle(event):
                calls.append(event)
        """)
        reactor = load_reactor("cwd_reactor")
        reactor.handle("x")
        assert sys.modules["cwd_reactor"].calls == ["x"]

    def test_extra_search_paths(self, isolated_imports):
        extra = isolated_imports / "extra"
        extra.mkdir()
        _write(extra / "extra_reactor.py", "def handle(event):\n    pass\n")
        assert isinstance(load_reactor("extra_reactor", [str(extra)]), FunctionReactor)

    def test_missing_module(self, isolated_imports):
        with pytest.raises(ReactorLoadError, match="Cannot load"):
            load_reactor("no_such_reactor_module")

    def test_module_raising_on_import(self, isolated_imports):
        _write(isolated_imports / "broken_reactor.py", "raise RuntimeError('bad config')\n")
        with pytest.raises(ReactorLoadError, match="bad config"):
            load_reactor("broken_reactor")

    def test_reactor_constructor_failure(self, isolated_imports):
        _write(isolated_imports / "ctor_reactor.py", """
            from apphost.reactor import Reactor

            class R(Reactor):
                def __init__(self):
                    raise RuntimeError("missing setting")

                def handle(self, event):
                    pass
        """)
        with pytest.raises(ReactorLoadError, match="R failed to start: missing setting"):
            load_reactor("ctor_reactor")

    def test_module_without_handler(self, isolated_imports):
        _write(isolated_imports / "empty_reactor.py", "VALUE = 1\n")
        with pytest.raises(ReactorLoadError):
            load_reactor("empty_reactor")


class TestReactorDispatcher:
    def test_converts_and_delivers(self):
        reactor = RecordingReactor()
        dispatcher = ReactorDispatcher(reactor)

        assert dispatcher.dispatch(make_event("A", properties={"User": "bob"})) is True

        assert len(reactor.received) == 1
        event = reactor.received[0]
        assert isinstance(event, ReactorEvent)
        assert event.data.properties == {"User": "bob"}

    def test_failure_does_not_stop_next_event(self, caplog):
        reactor = RecordingReactor(fail_on={"A"})
        stats = TailStats()
        dispatcher = ReactorDispatcher(reactor, stats)

        assert dispatcher.dispatch(make_event("A")) is False
        assert dispatcher.dispatch(make_event("B")) is True

        assert [e.id for e in reactor.received] == ["B"]
        assert stats.reactor_failures == 1
        assert "Reactor failed on event A" in caplog.text

    def test_no_reactor_is_noop(self):
        assert ReactorDispatcher().dispatch(make_event("A")) is True

    def test_base_class_is_abstract(self):
        with pytest.raises(TypeError):
            Reactor()

    def test_conversion_failure_is_isolated(self):
        stats = TailStats()
        reactor = RecordingReactor()
        event = replace(make_event("A"), timestamp=None)
        assert ReactorDispatcher(reactor, stats).dispatch(event) is False
        assert reactor.received == []
        assert stats.reactor_failures == 1
