"""Tests for the assetline plugin system."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from assetline.exceptions import PluginError
from assetline.loaders.base import LoaderContext, Transform
from assetline.models import PluginsConfig, ProjectConfig
from assetline.plugins.base import Plugin
from assetline.plugins.hooks import HookRunner
from assetline.plugins.manager import ENTRY_POINT_GROUP, PluginManager


# ---------------------------------------------------------------------------
# Test helpers: concrete Plugin subclasses
# ---------------------------------------------------------------------------


class MinimalPlugin(Plugin):
    """Smallest valid plugin; only implements the required ``name`` property."""

    @property
    def name(self) -> str:
        return "minimal"


class SassTransform(Transform):
    name = "sass"

    def transform(self, text: str, ctx: LoaderContext) -> str:
        return text


class SassPlugin(Plugin):
    """Contributes a ``sass`` transform."""

    @property
    def name(self) -> str:
        return "sass"

    @property
    def version(self) -> str:
        return "2.1.0"

    @property
    def description(self) -> str:
        return "Compile .scss with dart-sass"

    def transforms(self) -> dict[str, Transform]:
        return {"sass": SassTransform()}


class SecondSassPlugin(SassPlugin):
    @property
    def name(self) -> str:
        return "sass-alt"


class TrackingPlugin(Plugin):
    """Records every lifecycle call."""

    def __init__(self, label: str = "tracker", log: list[str] | None = None) -> None:
        self._label = label
        self.log = log if log is not None else []
        self.init_config: Any = None

    @property
    def name(self) -> str:
        return self._label

    def on_init(self, config: ProjectConfig) -> None:
        self.init_config = config

    def on_build_start(self, config: Any) -> None:
        self.log.append(f"{self._label}:start")

    def on_build_complete(self, result: Any) -> None:
        self.log.append(f"{self._label}:complete")

    def on_error(self, error: Exception) -> None:
        self.log.append(f"{self._label}:error:{error}")

    def cleanup(self) -> None:
        self.log.append(f"{self._label}:cleanup")


class BrokenErrorHandlerPlugin(Plugin):
    @property
    def name(self) -> str:
        return "broken"

    def on_error(self, error: Exception) -> None:
        raise RuntimeError("handler exploded")

    def cleanup(self) -> None:
        raise RuntimeError("cleanup exploded")


def _entry_point(name: str, cls: type) -> MagicMock:
    ep = MagicMock()
    ep.name = name
    ep.load.return_value = cls
    return ep


# ---------------------------------------------------------------------------
# Plugin base class
# ---------------------------------------------------------------------------


class TestPluginBase:
    def test_defaults(self) -> None:
        plugin = MinimalPlugin()
        assert plugin.version == "0.1.0"
        assert plugin.description == ""
        assert plugin.transforms() == {}
        plugin.on_init(ProjectConfig())
        plugin.on_build_start(MagicMock())
        plugin.on_build_complete(MagicMock())
        plugin.on_error(RuntimeError("x"))
        plugin.cleanup()

    def test_name_is_abstract(self) -> None:
        class Nameless(Plugin):
            pass

        with pytest.raises(TypeError):
            Nameless()  # type: ignore[abstract]


# ---------------------------------------------------------------------------
# HookRunner
# ---------------------------------------------------------------------------


class TestHookRunner:
    def test_collect_transforms_adds_plugin_names(self) -> None:
        builtin = {"raw": MagicMock(spec=Transform)}
        registry = HookRunner([SassPlugin()]).collect_transforms(builtin)
        assert sorted(registry) == ["raw", "sass"]
        assert builtin == {"raw": builtin["raw"]}

    def test_collision_with_builtin(self) -> None:
        with pytest.raises(PluginError, match="already provided by built-in"):
            HookRunner([SassPlugin()]).collect_transforms({"sass": MagicMock(spec=Transform)})

    def test_collision_between_plugins(self) -> None:
        with pytest.raises(PluginError, match="already provided by plugin 'sass'"):
            HookRunner([SassPlugin(), SecondSassPlugin()]).collect_transforms({})

    def test_hooks_run_in_registration_order(self) -> None:
        log: list[str] = []
        runner = HookRunner([TrackingPlugin("a", log), TrackingPlugin("b", log)])
        runner.run_build_start(MagicMock())
        runner.run_build_complete(MagicMock())
        assert log == ["a:start", "b:start", "a:complete", "b:complete"]

    def test_error_hook_failure_is_logged(
        self, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        log: list[str] = []
        runner = HookRunner([BrokenErrorHandlerPlugin(), TrackingPlugin("after", log)])
        monkeypatch.setattr(logging.getLogger("assetline"), "propagate", True)
        with caplog.at_level(logging.WARNING, logger="assetline"):
            runner.run_error(ValueError("boom"))
        assert log == ["after:error:boom"]
        assert "handler exploded" in caplog.text


# ---------------------------------------------------------------------------
# PluginManager
# ---------------------------------------------------------------------------


class TestPluginManager:
    def test_load_and_get(self) -> None:
        manager = PluginManager()
        plugin = TrackingPlugin()
        config = ProjectConfig()
        manager.load_plugin("tracker", plugin, config)
        assert manager.get_plugin("tracker") is plugin
        assert plugin.init_config is config

    def test_duplicate_load(self) -> None:
        manager = PluginManager()
        manager.load_plugin("minimal", MinimalPlugin(), ProjectConfig())
        with pytest.raises(PluginError, match="already loaded"):
            manager.load_plugin("minimal", MinimalPlugin(), ProjectConfig())

    def test_get_unknown(self) -> None:
        with pytest.raises(PluginError, match="not loaded"):
            PluginManager().get_plugin("ghost")

    def test_list_plugins(self) -> None:
        manager = PluginManager()
        manager.load_plugin("sass", SassPlugin(), ProjectConfig())
        assert manager.list_plugins() == [
            {"name": "sass", "version": "2.1.0", "description": "Compile .scss with dart-sass"}
        ]

    def test_hook_runner_rebuilt_after_load(self) -> None:
        manager = PluginManager()
        first = manager.get_hook_runner()
        assert manager.get_hook_runner() is first
        manager.load_plugin("sass", SassPlugin(), ProjectConfig())
        runner = manager.get_hook_runner()
        assert runner is not first
        assert "sass" in runner.collect_transforms({})

    def test_cleanup_continues_past_failures(self) -> None:
        log: list[str] = []
        manager = PluginManager()
        manager.load_plugin("broken", BrokenErrorHandlerPlugin(), ProjectConfig())
        manager.load_plugin("tracker", TrackingPlugin("tracker", log), ProjectConfig())
        manager.cleanup()
        assert log == ["tracker:cleanup"]
        assert manager.list_plugins() == []


class TestDiscovery:
    def _discover(self, config: ProjectConfig, *eps: MagicMock) -> tuple[PluginManager, list[str]]:
        manager = PluginManager()
        with patch("importlib.metadata.entry_points", return_value=list(eps)) as mock_eps:
            names = manager.discover(config)
        mock_eps.assert_called_once_with(group=ENTRY_POINT_GROUP)
        return manager, names

    def test_loads_all_by_default(self) -> None:
        _, names = self._discover(
            ProjectConfig(),
            _entry_point("sass", SassPlugin),
            _entry_point("minimal", MinimalPlugin),
        )
        assert names == ["sass", "minimal"]

    def test_enabled_list_is_an_allowlist(self) -> None:
        config = ProjectConfig(plugins=PluginsConfig(enabled=["minimal"]))
        _, names = self._discover(
            config, _entry_point("sass", SassPlugin), _entry_point("minimal", MinimalPlugin)
        )
        assert names == ["minimal"]

    def test_disabled_list(self) -> None:
        config = ProjectConfig(plugins=PluginsConfig(disabled=["sass"]))
        _, names = self._discover(
            config, _entry_point("sass", SassPlugin), _entry_point("minimal", MinimalPlugin)
        )
        assert names == ["minimal"]

    def test_load_failure_is_skipped(self) -> None:
        bad = MagicMock()
        bad.name = "bad"
        bad.load.side_effect = ImportError("no module named assetline_bad")
        manager, names = self._discover(ProjectConfig(), bad, _entry_point("minimal", MinimalPlugin))
        assert names == ["minimal"]
        with pytest.raises(PluginError):
            manager.get_plugin("bad")
