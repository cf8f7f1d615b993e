import json

from eth_account import Account

from autotx.wallets import WalletStore, read_recipients
from utils import address


def test_read_recipients_skips_blanks_comments_and_garbage(tmp_path):
    path = tmp_path / "verified_addresses.txt"
    path.write_text(f"{address(1)}\r\n\n# comment\nnot-an-address\n  {address(2)}  \n")
    assert read_recipients(path) == [address(1), address(2)]


def test_missing_recipients_file_is_empty(tmp_path):
    assert read_recipients(tmp_path / "nope.txt") == []


def test_generate_appends_json_lines(tmp_path):
    store = WalletStore(tmp_path / "generated_wallets.jsonl")
    first = store.generate(2)
    second = store.generate(1)

    lines = (tmp_path / "generated_wallets.jsonl").read_text().splitlines()
    records = [json.loads(line) for line in lines]
    assert [r['address'] for r in records] == first + second
    for record in records:
        assert Account.from_key(record['privateKey']).address == record['address']


def test_generate_skips_known_wallets(tmp_path):
    known = Account.create()
    fresh = Account.create()
    store = WalletStore(tmp_path / "generated_wallets.jsonl")
    store.path.write_text(json.dumps({'address': known.address, 'privateKey': known.key.hex()}) + "\n")

    accounts = iter([known, fresh])
    created = store.generate(1, create=lambda: next(accounts))

    assert created == [fresh.address]
    assert store.addresses() == {known.address.lower(), fresh.address.lower()}
