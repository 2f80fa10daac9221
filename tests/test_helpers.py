from auto_aim.helpers import DifferenceVelocity, FpsCounter


def test_fps_counter_one_second_window():
    t = [0.0]
    fps = FpsCounter(clock=lambda: t[0])
    for _ in range(31):
        t[0] += 1 / 32
        assert not fps.tick()
    t[0] += 1 / 32
    assert fps.tick()
    assert abs(fps.fps - 32.0) < 1e-6


def test_difference_velocity():
    v = DifferenceVelocity()
    assert v.start((10.0, 10.0)) == (0.0, 0.0)
    assert v.update((13.0, 8.0)) == (3.0, -2.0)
    v.coast()
    assert v.update((14.0, 8.0)) == (1.0, 0.0)
