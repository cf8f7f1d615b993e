import pytest

from autotx.endpoints import EndpointSelector
from autotx.errors import NoHealthyEndpoint
from utils import FakeWeb3


def make_selector(clock, specs, **kwargs):
    """specs: list of (latency_seconds, head_age_seconds) per candidate URL."""
    chains = {}
    for i, (latency, head_age) in enumerate(specs):
        url = f"http://rpc-{i}"
        chains[url] = FakeWeb3(url, clock, latency=latency, head_age=head_age)
    selector = EndpointSelector(list(chains), connect=chains.__getitem__, clock=clock, timer=clock, **kwargs)
    return selector, chains


def test_fresh_candidate_beats_faster_stale_ones(clock):
    selector, _ = make_selector(clock, [(0.050, 120), (0.080, 2), (0.040, 45)])
    assert selector.select().url == "http://rpc-1", "Only the fresh 80ms endpoint is eligible"


def test_lowest_latency_wins_among_fresh(clock):
    selector, _ = make_selector(clock, [(0.050, 120), (0.080, 2), (0.040, 5)])
    assert selector.select().url == "http://rpc-2"


def test_ties_go_to_configuration_order(clock):
    selector, _ = make_selector(clock, [(0.25, 1), (0.25, 1)])
    assert selector.select().url == "http://rpc-0"


def test_probe_error_does_not_abort_selection(clock):
    selector, chains = make_selector(clock, [(0.010, 0), (0.070, 0)])
    chains["http://rpc-0"].eth.block_error = ConnectionError("Name or service not known")
    assert selector.select().url == "http://rpc-1"


def test_connect_error_marks_candidate_ineligible(clock):
    good = FakeWeb3("http://good", clock)

    def connect(url):
        if url == "http://bad":
            raise OSError("dns failure")
        return good

    selector = EndpointSelector(["http://bad", "http://good"], connect=connect, clock=clock, timer=clock)
    assert selector.select().url == "http://good"


def test_falls_back_to_first_url_when_nothing_is_eligible(clock, caplog):
    selector, _ = make_selector(clock, [(0.010, 100), (0.020, 200)])
    endpoint = selector.select()
    assert endpoint.url == "http://rpc-0"
    assert endpoint.latency is None
    assert "No suitable RPC found" in caplog.text


def test_fail_policy_raises_when_nothing_is_eligible(clock):
    selector, _ = make_selector(clock, [(0.010, 100)], fallback="fail")
    with pytest.raises(NoHealthyEndpoint):
        selector.select()


def test_choice_is_cached_for_ttl(clock):
    selector, chains = make_selector(clock, [(0.010, 0)])
    eth = chains["http://rpc-0"].eth
    first = selector.select()
    clock.advance(30)
    assert selector.select() is first
    assert eth.block_calls == 1, "A cached endpoint should not be re-probed"

    clock.advance(31)
    assert selector.select() is not first
    assert eth.block_calls == 2


def test_invalidate_forces_new_probe(clock):
    selector, chains = make_selector(clock, [(0.010, 0)])
    selector.select()
    selector.invalidate()
    assert selector.cached is None
    selector.select()
    assert chains["http://rpc-0"].eth.block_calls == 2


def test_empty_url_list_is_rejected(clock):
    with pytest.raises(ValueError):
        EndpointSelector([], clock=clock)
