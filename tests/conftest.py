import datetime

import pytest

from autotx.endpoints import EndpointSelector
from autotx.health import HealthGate
from autotx.ledger import QuotaLedger
from autotx.submitter import TransactionSubmitter
from utils import PRIVATE_KEY, FakeClock, FakeWeb3, RecordingContext, RecordingSleep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep(clock):
    return RecordingSleep(clock)


@pytest.fixture
def chain(clock):
    return FakeWeb3("http://rpc-1", clock)


@pytest.fixture
def selector(chain, clock):
    return EndpointSelector([chain.provider.endpoint_uri], connect=lambda url: chain, clock=clock, timer=clock)


@pytest.fixture
def context(selector):
    return RecordingContext(PRIVATE_KEY, selector)


@pytest.fixture
def submitter(context, sleep):
    return TransactionSubmitter(context, chain_id=10218, explorer_url="https://explorer.test", sleep=sleep)


@pytest.fixture
def gate(context, clock, sleep):
    return HealthGate(context, clock=clock, sleep=sleep)


@pytest.fixture
def today():
    return {'date': datetime.date(2026, 10, 19)}


@pytest.fixture
def ledger(tmp_path, today):
    return QuotaLedger(tmp_path, limit=3500, today=lambda: today['date'])
