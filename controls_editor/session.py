"""Editing session: trees, settings and the current device selection in one place.

``EditorSession`` owns a ``SettingsStore`` and routes every store change into
a ``DebouncedSync`` whose callback publishes the flat control options.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from controls_editor.config import EditorConfig
from controls_editor.controls_file import ControlsFile
from controls_editor.curve_math import evaluate_exponent, evaluate_piecewise
from controls_editor.format_converter import (
    all_control_options,
    from_load_record,
    load_flat_groups,
    to_persistence_record,
)
from controls_editor.hierarchy_builder import default_option_root
from controls_editor.models import Curve, DeviceClass, OptionNode, find_node_by_path
from controls_editor.options_cache import OptionsCache
from controls_editor.settings_store import (
    CURVE_MODE_CURVE,
    CURVE_MODE_EXPONENT,
    SETTING_CURVE,
    SETTING_CURVE_MODE,
    SETTING_EXPONENT,
    SETTING_INVERT,
    DeviceSelection,
    InheritedValue,
    SettingsError,
    SettingsStore,
)
from controls_editor.sync import DebouncedSync

LOGGER = logging.getLogger("SCControls.Session")

Publisher = Callable[[List[Dict[str, Any]]], Any]


class EditorSession:
    def __init__(
        self,
        trees: Mapping[DeviceClass, OptionNode],
        *,
        config: Optional[EditorConfig] = None,
        store: Optional[SettingsStore] = None,
        publisher: Optional[Publisher] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config or EditorConfig()
        self._logger = logger or LOGGER
        self._trees: Dict[DeviceClass, OptionNode] = {
            device_class: trees.get(device_class) or default_option_root(device_class) for device_class in DeviceClass
        }
        self._store = store or SettingsStore(max_instances=self._config.max_instances)
        if publisher is None and self._config.cache_path is not None:
            publisher = self._cache_publisher(OptionsCache(self._config.cache_path, logger=self._logger))
        self._publisher = publisher
        self._sync = DebouncedSync(self._publish, self._config.sync_debounce_seconds, logger=self._logger)
        self._store.set_change_listener(self._sync.schedule)
        self._selection = DeviceSelection(DeviceClass.KEYBOARD)

    def _cache_publisher(self, cache: OptionsCache) -> Publisher:
        def _write(options: List[Dict[str, Any]]) -> None:
            cache.write(options, unsaved=self.unsaved)

        return _write

    # Selection -----------------------------------------------------------

    @property
    def store(self) -> SettingsStore:
        return self._store

    @property
    def sync(self) -> DebouncedSync:
        return self._sync

    @property
    def trees(self) -> Dict[DeviceClass, OptionNode]:
        return dict(self._trees)

    @property
    def selection(self) -> DeviceSelection:
        return self._selection

    @property
    def tree(self) -> OptionNode:
        return self._trees[self._selection.device_class]

    @property
    def unsaved(self) -> bool:
        return self._store.dirty

    def select_device(self, device_class: Any, instance: Any = 1) -> DeviceSelection:
        """Switch the class/instance every following operation applies to."""

        selection = DeviceSelection.of(device_class, instance)
        if not selection.device_class.is_multi_instance:
            selection = DeviceSelection(selection.device_class, 1)
        elif not 1 <= selection.instance <= self._store.max_instances:
            raise SettingsError(
                f"{selection.device_class.value} instance {selection.instance} outside 1..{self._store.max_instances}"
            )
        self._selection = selection
        self._logger.debug("Selected %s instance %d", selection.device_class.value, selection.instance)
        return selection

    def node(self, path: str) -> Optional[OptionNode]:
        return find_node_by_path(self.tree, path)

    def _editable(self, path: str) -> None:
        node = self.node(path)
        if node is not None and node.disabled:
            raise SettingsError(f"{path} is read-only: {node.disabled_reason}")

    # Effective values ----------------------------------------------------

    def _node_default(self, node: Optional[OptionNode], setting: str) -> Any:
        if node is None:
            return {SETTING_INVERT: False, SETTING_EXPONENT: 1.0, SETTING_CURVE_MODE: CURVE_MODE_EXPONENT}.get(setting)
        if setting == SETTING_INVERT:
            return node.invert
        if setting == SETTING_EXPONENT:
            return node.exponent if node.exponent is not None else 1.0
        if setting == SETTING_CURVE:
            return node.curve.copy() if node.curve is not None else None
        if setting == SETTING_CURVE_MODE:
            has_points = node.curve is not None and node.curve.has_points
            return CURVE_MODE_CURVE if has_points else CURVE_MODE_EXPONENT
        return None

    def effective(self, path: str, setting: str) -> InheritedValue:
        """Own value, else nearest ancestor's, else the node's source default."""

        return self._store.get_with_inheritance(self._selection, path, setting, self._node_default(self.node(path), setting))

    def evaluate_response(self, path: str, value: float) -> float:
        """Output the effective exponent or curve produces for ``value``."""

        mode = self.effective(path, SETTING_CURVE_MODE).value
        if mode == CURVE_MODE_CURVE:
            curve = self.effective(path, SETTING_CURVE).value
            if isinstance(curve, Curve) and curve.has_points and not curve.reset:
                return evaluate_piecewise(value, curve.points)
            return value
        exponent = self.effective(path, SETTING_EXPONENT).value
        return evaluate_exponent(value, float(exponent or 1.0))

    # Editing -------------------------------------------------------------

    def set(self, path: str, setting: str, value: Any) -> None:
        self._editable(path)
        self._store.set(self._selection, path, setting, value)

    def set_invert(self, path: str, invert: bool) -> None:
        self.set(path, SETTING_INVERT, bool(invert))

    def set_exponent(self, path: str, exponent: float) -> None:
        """Exponent edits always switch the node to exponent mode."""

        self._editable(path)
        with self._store.lock:
            self._store.set(self._selection, path, SETTING_CURVE_MODE, CURVE_MODE_EXPONENT)
            self._store.set(self._selection, path, SETTING_EXPONENT, exponent)

    def set_curve_mode(self, path: str, mode: str) -> None:
        self.set(path, SETTING_CURVE_MODE, mode)

    def reset_node(self, path: str) -> bool:
        self._editable(path)
        return self._store.reset_node(self._selection, path)

    def propagate(self, path: str, setting: str) -> int:
        """Copy the node's effective value onto every descendant."""

        node = self.node(path)
        if node is None:
            raise SettingsError(f"No option at {path}")
        self._editable(path)
        value = self.effective(path, setting).value
        if value is None:
            raise SettingsError(f"{setting} has no value at {path} to propagate")
        return self._store.propagate_to_descendants(self._selection, node, setting, value)

    def _default_curve(self, path: str) -> Optional[Curve]:
        return self.effective(path, SETTING_CURVE).value

    def apply_curve_preset(self, path: str, preset: str) -> Curve:
        self._editable(path)
        return self._store.apply_curve_preset(self._selection, path, preset)

    def add_curve_point(self, path: str) -> Curve:
        self._editable(path)
        return self._store.add_curve_point(self._selection, path, self._default_curve(path))

    def update_curve_point(self, path: str, index: int, field: str, value: Any) -> Curve:
        self._editable(path)
        return self._store.update_curve_point(self._selection, path, index, field, value, self._default_curve(path))

    def remove_curve_point(self, path: str, index: int) -> Curve:
        self._editable(path)
        return self._store.remove_curve_point(self._selection, path, index, self._default_curve(path))

    # Sync / profiles -----------------------------------------------------

    def control_options(self) -> List[Dict[str, Any]]:
        return all_control_options(self._store, self._config.max_instances)

    def _publish(self) -> None:
        if self._publisher is None:
            self._logger.debug("No sync target configured; skipping publish")
            return
        options = self.control_options()
        self._publisher(options)
        self._logger.debug("Published %d control option group(s)", len(options))

    def flush(self) -> bool:
        return self._sync.flush_pending()

    def close(self) -> None:
        self._sync.cancel()

    def save_profile(self, profile_name: str) -> ControlsFile:
        """Snapshot the store as a profile and mark the session saved."""

        controls = ControlsFile.from_devices(profile_name, to_persistence_record(self._store))
        self._store.mark_saved()
        return controls

    def load_profile(self, controls: ControlsFile) -> None:
        self._sync.cancel()
        from_load_record(self._store, controls.to_load_record(), self._trees)
        self._logger.info("Loaded profile %s", controls.profile_name)

    def load_control_options(self, groups: Sequence[Mapping[str, Any]]) -> int:
        """Replace all settings from flat groups (cache contents or parsed actionmaps)."""

        self._sync.cancel()
        return load_flat_groups(self._store, self._trees, groups)
