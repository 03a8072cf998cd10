from causal_coupling.engine.runtime import FiredEvent, TriggerRuntime
from causal_coupling.signals import Sample


def test_hold_is_inclusive_of_deadline():
    rt = TriggerRuntime()
    assert not rt.is_held("e1", 0.0)
    rt.set_hold("e1", 1500.0)
    assert rt.is_held("e1", 1000.0)
    assert rt.is_held("e1", 1500.0)
    assert not rt.is_held("e1", 1500.1)
    assert not rt.is_held("e2", 1000.0)


def test_fired_log_is_bounded():
    rt = TriggerRuntime(max_fired=3)
    for i in range(5):
        rt.log_fire(f"e{i}", float(i))
    assert rt.capacity == 3
    assert rt.fired == (
        FiredEvent("e2", 2.0),
        FiredEvent("e3", 3.0),
        FiredEvent("e4", 4.0),
    )


def test_default_capacity():
    assert TriggerRuntime().capacity == 2000


def test_reset_clears_everything():
    rt = TriggerRuntime()
    rt.set_last("sig", Sample(10.0, 1.0))
    rt.set_last(("e1", "sig"), Sample(10.0, 1.0))
    rt.set_hold("e1", 1e12)
    rt.log_fire("e1", 10.0)

    rt.reset()

    assert rt.get_last("sig") is None
    assert rt.get_last(("e1", "sig")) is None
    assert not rt.is_held("e1", 0.0)
    assert rt.fired == ()


def test_last_sample_round_trip():
    rt = TriggerRuntime()
    rt.set_last("sig", Sample(5.0, 2.5))
    assert rt.get_last("sig") == Sample(5.0, 2.5)
