import pytest

from swerve_sim.engine.config import MotorConfig
from swerve_sim.engine.motor import MotorModel
from swerve_sim.engine.types import OUTPUT_CURRENT, OUTPUT_VOLTAGE


def test_full_voltage_at_stall_gives_geared_stall_torque():
    motor = MotorModel(MotorConfig(gear_ratio=10.0))
    out = motor.compute_torque(12.0, OUTPUT_VOLTAGE, 0.0)
    assert out.current_a == pytest.approx(366.0)
    assert out.torque_nm == pytest.approx(70.9)


def test_no_torque_at_free_speed():
    cfg = MotorConfig(gear_ratio=10.0)
    motor = MotorModel(cfg)
    out = motor.compute_torque(12.0, OUTPUT_VOLTAGE, cfg.free_speed_rad_s / 10.0)
    assert out.torque_nm == pytest.approx(0.0, abs=1e-9)
    assert out.current_a == pytest.approx(0.0, abs=1e-9)


def test_current_limit_saturates_torque():
    cfg = MotorConfig(gear_ratio=10.0, current_limit_a=40.0)
    out = MotorModel(cfg).compute_torque(12.0, OUTPUT_VOLTAGE, 0.0)
    assert out.current_a == pytest.approx(40.0)
    assert out.torque_nm == pytest.approx(cfg.kt_nm_per_a * 40.0 * 10.0)


def test_voltage_limited_by_config_and_supply():
    motor = MotorModel(MotorConfig(gear_ratio=5.0, voltage_limit_v=6.0))
    assert motor.compute_torque(12.0, OUTPUT_VOLTAGE, 0.0).voltage_v == pytest.approx(6.0)
    assert motor.compute_torque(-12.0, OUTPUT_VOLTAGE, 0.0, supply_voltage_v=4.5).voltage_v == pytest.approx(-4.5)


def test_current_output_maps_straight_to_torque():
    cfg = MotorConfig(gear_ratio=4.0)
    out = MotorModel(cfg).compute_torque(10.0, OUTPUT_CURRENT, 2.0)
    assert out.current_a == pytest.approx(10.0)
    assert out.torque_nm == pytest.approx(cfg.kt_nm_per_a * 10.0 * 4.0)
    assert out.voltage_v == pytest.approx(10.0 * cfg.resistance_ohm + cfg.ke_v_per_rad_s * 8.0)


@pytest.mark.parametrize("velocity, expected", [(1.0, -0.5), (-3.0, 0.5), (0.0, 0.0)])
def test_friction_opposes_motion(velocity, expected):
    motor = MotorModel(MotorConfig(gear_ratio=3.0, friction_torque_nm=0.5))
    assert motor.compute_torque(0.0, OUTPUT_CURRENT, velocity).torque_nm == pytest.approx(expected)


def test_compute_torque_is_pure():
    motor = MotorModel(MotorConfig(gear_ratio=6.75, current_limit_a=60.0))
    first = motor.compute_torque(7.0, OUTPUT_VOLTAGE, 12.0)
    motor.compute_torque(-12.0, OUTPUT_VOLTAGE, -40.0)
    assert motor.compute_torque(7.0, OUTPUT_VOLTAGE, 12.0) == first


def test_unknown_output_kind_rejected():
    with pytest.raises(ValueError):
        MotorModel(MotorConfig(gear_ratio=1.0)).compute_torque(1.0, "duty_cycle", 0.0)
