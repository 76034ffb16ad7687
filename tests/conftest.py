from __future__ import annotations

import pytest

from controls_editor.hierarchy_builder import load_option_trees_from_xml

OPTIONS_XML = """<?xml version="1.0" encoding="utf-8"?>
<ActionMaps>
  <optiontree type="keyboard" name="root" instances="1" UISensitivityMin="0.05" UISensitivityMax="4">
    <optiongroup name="master" UILabel="@ui_COMasterSensitivity">
      <optiongroup name="mouse_curves" UILabel="@ui_COMasterSensitivityCurvesMouse">
        <optiongroup name="inversion" UILabel="@ui_COInversion" UIShowInvert="-1">
          <optiongroup name="fps_view" UILabel="@ui_COFPSView">
            <optiongroup name="fps_view_pitch" UILabel="@ui_COFPSViewPitch" UIShowInvert="1" invert="0"/>
          </optiongroup>
        </optiongroup>
      </optiongroup>
    </optiongroup>
  </optiontree>
  <optiontree type="joystick" name="root" instances="8" UISensitivityMin="0.01" UISensitivityMax="2">
    <optiongroup name="master" UILabel="@ui_COMasterSensitivity">
      <optiongroup name="joystick_curves" UILabel="@ui_COMasterSensitivityCurvesJoystick">
        <optiongroup name="inversion" UILabel="@ui_COInversion" UIShowInvert="-1">
          <optiongroup name="flight" UILabel="@ui_COFlight">
            <optiongroup name="flight_move" UILabel="@ui_COFlightMove">
              <optiongroup name="flight_move_pitch" UILabel="@ui_COFlightPitch" UIShowInvert="1" invert="1" exponent="1.5">
                <nonlinearity_curve>
                  <point in="0.5" out="0.25"/>
                </nonlinearity_curve>
              </optiongroup>
              <optiongroup name="flight_move_yaw" UILabel="@ui_COFlightYaw" UIShowInvert="1"/>
            </optiongroup>
          </optiongroup>
        </optiongroup>
      </optiongroup>
    </optiongroup>
  </optiontree>
</ActionMaps>
"""

PITCH_PATH = "root.master.joystick_curves.inversion.flight.flight_move.flight_move_pitch"
YAW_PATH = "root.master.joystick_curves.inversion.flight.flight_move.flight_move_yaw"
FLIGHT_PATH = "root.master.joystick_curves.inversion.flight"
MOVE_PATH = "root.master.joystick_curves.inversion.flight.flight_move"


@pytest.fixture
def options_xml() -> str:
    return OPTIONS_XML


@pytest.fixture
def option_trees():
    return load_option_trees_from_xml(OPTIONS_XML)
