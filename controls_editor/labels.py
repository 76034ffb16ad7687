"""Display labels for option-tree localization keys."""
from __future__ import annotations

import re
from typing import Dict, Optional

from controls_editor.models import OptionNode

LABEL_PREFIX = "@ui_"
INVERSION_SECTION_LABEL = "@ui_COInversionSettings"
JOYSTICK_CURVES_LABEL = "@ui_COMasterSensitivityCurvesJoystick"
THUMBSTICK_CURVES_LABEL = "@ui_COMasterSensitivityCurvesThumb"
MOUSE_CURVES_LABEL = "@ui_COMasterSensitivityCurvesMouse"

DISPLAY_LABELS: Dict[str, str] = {
    # Sections
    INVERSION_SECTION_LABEL: "Inversion Settings",
    MOUSE_CURVES_LABEL: "Mouse Sensitivity Curves",
    THUMBSTICK_CURVES_LABEL: "Thumbstick Sensitivity Curves",
    JOYSTICK_CURVES_LABEL: "Joystick Sensitivity Curves",
    "@ui_COMasterSensitivity": "Master Sensitivity",
    # Categories
    "@ui_COFPS": "On Foot",
    "@ui_co_eva": "FPS EVA",
    "@ui_COFlight": "Flight",
    "@ui_COTurret": "Turrets",
    "@ui_COTurretAim": "Turrets",
    "@ui_COMannedGroundVehicle": "Ground Vehicle",
    "@ui_COMining": "Mining",
    "@ui_aiming": "Aiming and Weapons",
    "@ui_COAnyVehicle": "Any Vehicle",
    # On foot
    "@ui_COFPSView": "On Foot View",
    "@ui_COFPSViewPitch": "On Foot (Pitch)",
    "@ui_COFPSViewYaw": "On Foot (Yaw)",
    "@ui_COFPSMove": "FPS Movement",
    "@ui_COFPSMoveLeftRight": "Move Left/Right",
    "@ui_COFPSMoveForwardBackward": "Move Forward/Backward",
    # EVA
    "@ui_co_eva_roll": "EVA Roll",
    "@ui_co_eva_move_strafe_lateral": "EVA Strafe Lateral",
    "@ui_co_eva_move_strafe_longitudinal": "EVA Strafe Longitudinal",
    "@ui_co_eva_move_strafe_vertical": "EVA Strafe Vertical",
    # Flight
    "@ui_COFlightMove": "Flight Movement",
    "@ui_COFreeLook": "Free Look Mode",
    "@ui_COThrottleSensitivity": "Throttle",
    "@ui_COFlightPitch": "Flight (Pitch)",
    "@ui_COFlightYaw": "Flight (Yaw)",
    "@ui_COFlightRoll": "Flight (Roll)",
    "@ui_COStrafeUpDown": "Strafe Up/Down",
    "@ui_COStrafeLeftRight": "Strafe Left/Right",
    "@ui_v_strafe_longitudinal": "Strafe Longitudinal",
    "@ui_v_strafe_forward": "Strafe Forward",
    "@ui_v_strafe_back": "Strafe Backward",
    "@ui_co_flight_move_speed_range_abs": "Speed Limiter (abs)",
    "@ui_co_flight_move_speed_range_rel": "Velocity Limiter (rel)",
    "@ui_co_flight_move_accel_range_abs": "Acceleration Limiter (abs)",
    "@ui_co_flight_move_accel_range_rel": "Acceleration Limiter (rel)",
    "@ui_co_flight_move_space_brake": "Space Brake",
    "@ui_COFlightViewY": "Flight View (Pitch)",
    "@ui_COFlightViewX": "Flight View (Yaw)",
    "@ui_co_dynamic_zoom_rel": "Dynamic Zoom (rel)",
    "@ui_co_dynamic_zoom_abs": "Dynamic Zoom (abs)",
    "@ui_COFlightThrustAbsHalf": "Thrust (Half)",
    "@ui_COFlightThrustAbsFull": "Thrust (Full)",
    # Turrets
    "@ui_COTurretAimPitch": "Turret Aim (Pitch)",
    "@ui_COTurretAimYaw": "Turret Aim (Yaw)",
    "@ui_CO_Turret_VJMode": "Turret Virtual Joystick Mode",
    "@ui_CO_Turret_VJoyModePitch": "Turret VJoy (Pitch)",
    "@ui_CO_Turret_VJoyModeYaw": "Turret VJoy (Yaw)",
    "@ui_COTurretRelativeMode": "Turret Relative Mode",
    "@ui_CO_TurretRelativeModePitch": "Turret Relative (Pitch)",
    "@ui_CO_TurretRelativeModeYaw": "Turret Relative (Yaw)",
    "@ui_CO_TurretLimiterRelative": "Turret Limiter (rel)",
    "@ui_CO_TurretLimiterAbsolute": "Turret Limiter (abs)",
    # Ground vehicle
    "@ui_COGroundVehicleViewY": "Vehicle View (Pitch)",
    "@ui_COGroundVehicleViewX": "Vehicle View (Yaw)",
    "@ui_COGroundVehicleMove": "Vehicle Move",
    "@ui_COGroundVehicleMoveForward": "Vehicle Move Forward",
    "@ui_COGroundVehicleMoveBackward": "Vehicle Move Backward",
    "@ui_COMGVPitch": "Vehicle (Pitch)",
    "@ui_COMGVYaw": "Vehicle (Yaw)",
    # Mouse-only vehicle modes
    "@ui_COVJMode": "Virtual Joystick Mode",
    "@ui_COVJModePitch": "VJoy Mode (Pitch)",
    "@ui_COVJModeYaw": "VJoy Mode (Yaw)",
    "@ui_COVJModeRoll": "VJoy Mode (Roll)",
    "@ui_COVJFixedMode": "Virtual Joystick Fixed Mode",
    "@ui_COVJFixedModePitch": "VJoy Fixed (Pitch)",
    "@ui_COVJFixedModeYaw": "VJoy Fixed (Yaw)",
    "@ui_COVJFixedModeRoll": "VJoy Fixed (Roll)",
    "@ui_CORelativeMode": "Relative Mode",
    "@ui_CORelativeModePitch": "Relative (Pitch)",
    "@ui_CORelativeModeYaw": "Relative (Yaw)",
    "@ui_CORelativeModeRoll": "Relative (Roll)",
    "@ui_COAimMode": "Aim Mode",
    "@ui_COAimModePitch": "Aim Mode (Pitch)",
    "@ui_COAimModeYaw": "Aim Mode (Yaw)",
    # Mining / weapons
    "@ui_COMiningThrottle": "Mining Throttle",
    "@ui_weapon_convergence_distance_rel": "Weapon Convergence (rel)",
    "@ui_weapon_convergence_distance_abs": "Weapon Convergence (abs)",
}

_PREFIX_RE = re.compile(r"^@ui_", re.IGNORECASE)
_UPPER_RE = re.compile(r"([A-Z])")


def cleanup_label(label: str) -> str:
    """Turn an unmapped ``@ui_`` key into readable text."""

    text = _PREFIX_RE.sub("", label)
    text = _UPPER_RE.sub(r" \1", text).strip()
    text = text.replace("_", " ")
    return text[:1].upper() + text[1:]


def display_label(node: Optional[OptionNode]) -> str:
    if node is None or not node.label:
        return "Unknown"
    mapped = DISPLAY_LABELS.get(node.label)
    if mapped is not None:
        return mapped
    if node.label.startswith(LABEL_PREFIX):
        return cleanup_label(node.label)
    return node.label
