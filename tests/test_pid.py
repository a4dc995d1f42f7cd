import pytest

from drive_sim.pid import PIDController


@pytest.fixture
def pid() -> PIDController:
    return PIDController(1.0, 0.0, 10.0, 12.0)


def test_first_call_has_no_derivative_kick(pid):
    assert pid.calc_pid(10, 0, 1) == pytest.approx(10)


def test_derivative_uses_error_change(pid):
    pid.calc_pid(10, 0, 1)
    # p = 6, d = 10 * (6 - 10)
    assert pid.calc_pid(10, 4, 1) == pytest.approx(-34)


def test_integral_accumulates():
    pid = PIDController(0.0, 0.5, 0.0, 12.0)
    pid.calc_pid(2, 0, 0.1)
    assert pid.calc_pid(2, 0, 0.1) == pytest.approx(2.0)
    assert pid.error_sum == pytest.approx(4.0)


def test_at_target_within_tolerance(pid):
    pid.calc_pid(10, 0, 1)
    assert not pid.is_done()
    pid.calc_pid(10, 9.5, 1)
    assert pid.is_done()


def test_reset_clears_state(pid):
    pid.calc_pid(10, 9.5, 1)
    pid.reset()
    assert pid.error_sum == 0
    assert pid.last_error == 0
    assert not pid.is_done()


def test_copy_keeps_gains_with_new_top_speed(pid):
    pid.calc_pid(10, 0, 1)
    clone = pid.copy(top_speed=6.0)
    assert (clone.kp, clone.ki, clone.kd) == (pid.kp, pid.ki, pid.kd)
    assert clone.top_speed == 6.0
    assert clone.last_error == 0


class TestRegulatedPID:
    def test_output_capped_by_top_speed(self):
        pid = PIDController(1.0, 0.0, 0.0, 12.0)
        # 6 ft/s of a 12 ft/s robot is half the supply voltage
        assert pid.calc_regulated_pid(100, 0, 1, 6, 1) == pytest.approx(6.0)

    def test_output_floored_by_min_speed(self):
        pid = PIDController(1.0, 0.0, 0.0, 12.0)
        assert pid.calc_regulated_pid(0.1, 0, 0.01, 12, 1) == pytest.approx(1.0)

    def test_sign_is_kept(self):
        pid = PIDController(1.0, 0.0, 0.0, 12.0)
        assert pid.calc_regulated_pid(-100, 0, 1, 6, 1) == pytest.approx(-6.0)
        pid.reset()
        assert pid.calc_regulated_pid(-0.1, 0, 0.01, 12, 1) == pytest.approx(-1.0)

    def test_zero_top_speed_gives_zero_output(self):
        pid = PIDController(1.0, 0.0, 0.0, 12.0)
        assert pid.calc_regulated_pid(100, 0, 1, 0, 0) == 0


class TestDistanceVelocityPID:
    def test_proportional_output(self):
        pid = PIDController(2.0, 0.0, 0.0, 12.0)
        assert pid.calc_dv_pid(10, 0, 0, 1) == pytest.approx(20)

    def test_derivative_compares_error_rate_with_goal_velocity(self):
        pid = PIDController(0.0, 0.0, 1.0, 12.0)
        pid.calc_dv_pid(10, 0, 0, 1)
        # Error shrinks by 0.3 in over one 5 ms tick: -5 ft/s
        assert pid.calc_dv_pid(10, 0.3, 2.0, 1) == pytest.approx(-7.0)

    def test_at_target_measured_from_init_pos(self):
        pid = PIDController(1.0, 0.0, 0.0, 12.0)
        pid.init_pos = 0.0
        pid.calc_dv_pid(10, 5, 0, 1)
        assert not pid.is_done()
        pid.calc_dv_pid(10, 9.5, 0, 1)
        assert pid.is_done()
