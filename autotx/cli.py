r"""
Deploy a CustomToken and send rate-limited native/token batches on a testnet.

Setup:
1. Install the package:
   pip install -e .

2. Create a .env file in the working directory:
   MAIN_PRIVATE_KEY=<your_private_key>
   RPC_URL=<rpc_url>[,<rpc_url>...]
   CHAIN_ID=10218
   EXPLORER_URL=https://sepolia.tea.xyz

3. Put recipient addresses, one per line, in verified_addresses.txt

4. Run the script:
   autotx                      # interactive menu
   autotx send-native [--file FILE]
   autotx send-token --symbol SYMBOL --amount AMOUNT
   autotx send-generated --count COUNT
   autotx deploy --name NAME --symbol SYMBOL [--decimals 18] --supply SUPPLY

Typing "back" at any prompt returns to the menu.
"""
import argparse
import logging
import sys
from pathlib import Path

from . import token
from .account import AccountContext
from .batch import DELAY_WINDOW, BatchRunner
from .config import Settings
from .deploy import DeploymentFlow, TokenParams
from .endpoints import EndpointSelector
from .errors import AutoTxError, BuildError, ConfigError, DeploymentError
from .hardhat import Hardhat, InstallFailed
from .health import HealthGate
from .ledger import QuotaLedger
from .log import setup_logging
from .payloads import ContractNativeTransfer, NativeTransfer, TokenTransfer
from .submitter import TransactionSubmitter
from .wallets import GENERATED_WALLETS_FILE, RECIPIENTS_FILE, WalletStore, read_recipients

logger = logging.getLogger(__name__)

BACK = "back"


class Back(Exception):
    """The operator typed `back` at a prompt."""


def ask(message, prompt=input):
    answer = prompt(f"{message} ").strip()
    if answer.lower() == BACK:
        raise Back()
    return answer


def confirm(question, prompt=input):
    answer = ask(f"{question} [Y/n]", prompt).lower()
    return answer in ("", "y", "yes")


def separator(length=50):
    print("=" * length)


class App:
    """Wires the components for one configured account."""

    def __init__(self, settings: Settings, delay_window=DELAY_WINDOW, prompt=input):
        self.settings = settings
        self.prompt = prompt
        self.selector = EndpointSelector(settings.rpc_urls, fallback=settings.rpc_fallback)
        self.context = AccountContext(settings.private_key, self.selector)
        self.ledger = QuotaLedger(settings.state_dir, limit=settings.daily_limit)
        self.submitter = TransactionSubmitter(
            self.context,
            chain_id=settings.chain_id,
            explorer_url=settings.explorer_url,
            confirmation_timeout=settings.confirmation_timeout,
        )
        self.gate = HealthGate(self.context)
        self.runner = BatchRunner(self.submitter, self.ledger, self.gate, delay_window=delay_window)
        self.hardhat = Hardhat(settings)
        self.wallets = WalletStore(settings.state_dir / GENERATED_WALLETS_FILE)

    def _confirm(self, question):
        return confirm(question, self.prompt)

    def token_abi(self):
        try:
            return self.hardhat.load_artifact().abi
        except BuildError:
            return token.TOKEN_ABI

    def native_payload(self):
        if self.settings.contract_address:
            return ContractNativeTransfer(self.context, self.settings.contract_address, abi=self.token_abi())
        return NativeTransfer()

    def send_native(self, path=RECIPIENTS_FILE):
        recipients = read_recipients(path)
        if not recipients:
            logger.warning(f"No addresses found in {path}")
            return None
        separator()
        return self.runner.run(recipients, self.native_payload())

    def send_generated(self, count):
        separator()
        return self.runner.run_generated(count, NativeTransfer(), self.wallets)

    def token_payload(self, symbol, amount):
        if not self.settings.contract_address:
            raise ConfigError("Contract not deployed. Please deploy the contract first.")
        abi = self.token_abi()
        contract = token.bind(self.context.web3, self.settings.contract_address, abi)
        deployed_symbol = contract.functions.symbol().call()
        if deployed_symbol != symbol:
            raise ConfigError(f"Token with symbol {symbol} not found. The deployed token is {deployed_symbol}.")
        decimals = contract.functions.decimals().call()
        return TokenTransfer(contract.address, token.to_units(amount, decimals), symbol=symbol, abi=abi)

    def send_token(self, symbol, amount, path=RECIPIENTS_FILE):
        payload = self.token_payload(symbol, amount)
        recipients = read_recipients(path)
        if not recipients:
            logger.warning(f"No addresses found in {path}")
            return None
        separator()
        return self.runner.run(recipients, payload)

    def deploy(self, params: TokenParams):
        separator()
        flow = DeploymentFlow(self.settings, self.submitter, self.hardhat, confirm=self._confirm)
        return flow.run(params)

    # Interactive surface

    def prompt_deploy(self):
        name = ask("Enter Contract Name:", self.prompt)
        symbol = ask("Enter Contract Symbol:", self.prompt)
        decimals = ask("Enter Decimals (default 18):", self.prompt)
        supply = ask("Enter Total Supply (e.g., 100000):", self.prompt)
        return self.deploy(TokenParams.parse(name, symbol, decimals, supply))

    def prompt_send_token(self):
        if not self.settings.contract_address:
            logger.error("Contract not deployed. Please deploy the contract first.")
            return None
        symbol = ask("Enter the token symbol to send:", self.prompt)
        amount = ask("Enter the token amount per transaction (e.g., 0.001):", self.prompt)
        try:
            if float(amount) <= 0:
                raise ValueError
        except ValueError:
            logger.error("Must be a valid number")
            return None
        return self.send_token(symbol, amount)

    def prompt_send_generated(self):
        count = ask("How many wallets should be generated and funded?", self.prompt)
        if not count.isdigit() or int(count) <= 0:
            logger.error("Must be a positive whole number")
            return None
        return self.send_generated(int(count))

    def menu(self):
        actions = {
            "1": ("Deploy New Contract (Create ERC20 Token)", self.prompt_deploy),
            "2": (f"Send Native to addresses in {RECIPIENTS_FILE}", self.send_native),
            "3": (f"Send ERC20 Token to addresses in {RECIPIENTS_FILE} (if token deployed)", self.prompt_send_token),
            "4": ("Send Native to freshly generated wallets", self.prompt_send_generated),
            "5": ("Exit", None),
        }
        while True:
            separator()
            for key, (label, _) in actions.items():
                print(f"{key}. {label}")
            try:
                choice = ask("Choose an option:", self.prompt)
            except Back:
                continue
            if choice not in actions:
                logger.warning(f"Unknown option: {choice}")
                continue
            label, action = actions[choice]
            if action is None:
                logger.info("Exiting safely...")
                return 0
            try:
                action()
            except Back:
                logger.info("'back' detected. Returning to main menu...")
            except InstallFailed:
                raise
            except (AutoTxError, ValueError) as e:
                logger.error(str(e))
            except Exception as e:
                logger.error(f"Error in main menu: {e}")


def build_parser():
    parser = argparse.ArgumentParser(description='Deploy a token and send rate-limited transfer batches.')
    parser.add_argument('--env-file', type=str, default='.env', help='Path to the .env file')
    parser.add_argument('--rpc', type=str, help='Comma-separated RPC URLs (overrides RPC_URL)')
    parser.add_argument('--state-dir', type=str, help='Directory for daily counters and wallet stores')
    parser.add_argument('--min-delay', type=float, default=DELAY_WINDOW[0], help='Minimum seconds between transactions')
    parser.add_argument('--max-delay', type=float, default=DELAY_WINDOW[1], help='Maximum seconds between transactions')
    parser.add_argument('--no-color', action='store_true', help='Disable colored log output')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    sub = parser.add_subparsers(dest='command')
    sub.add_parser('menu', help='Interactive menu (default)')

    native = sub.add_parser('send-native', help='Send native currency to every address in the recipients file')
    native.add_argument('--file', type=str, default=RECIPIENTS_FILE, help='Recipients file')

    tok = sub.add_parser('send-token', help='Send the deployed token to every address in the recipients file')
    tok.add_argument('--symbol', type=str, required=True, help='Symbol of the deployed token')
    tok.add_argument('--amount', type=str, required=True, help='Token amount per transaction')
    tok.add_argument('--file', type=str, default=RECIPIENTS_FILE, help='Recipients file')

    gen = sub.add_parser('send-generated', help='Generate wallets and send native currency to them')
    gen.add_argument('--count', type=int, required=True, help='Number of wallets to generate')

    dep = sub.add_parser('deploy', help='Compile, deploy and verify a new token')
    dep.add_argument('--name', type=str, required=True)
    dep.add_argument('--symbol', type=str, required=True)
    dep.add_argument('--decimals', type=str, default='18')
    dep.add_argument('--supply', type=str, required=True)
    return parser


def run(args):
    rpc_urls = [url.strip() for url in args.rpc.split(',') if url.strip()] if args.rpc else None
    state_dir = Path(args.state_dir) if args.state_dir else None
    settings = Settings.from_env(args.env_file, rpc_urls=rpc_urls, state_dir=state_dir)
    app = App(settings, delay_window=(args.min_delay, args.max_delay))
    logger.info(f"Using account {app.context.address}")

    if args.command in (None, 'menu'):
        return app.menu()
    if args.command == 'send-native':
        app.send_native(args.file)
    elif args.command == 'send-token':
        app.send_token(args.symbol, args.amount, args.file)
    elif args.command == 'send-generated':
        app.send_generated(args.count)
    elif args.command == 'deploy':
        params = TokenParams.parse(args.name, args.symbol, args.decimals, args.supply)
        try:
            app.deploy(params)
        except DeploymentError as e:
            logger.error(str(e))
            return 1
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, color=not args.no_color)
    try:
        return run(args)
    except InstallFailed as e:
        logger.error(str(e))
        return 1
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        print('')
        logger.info("Stopped by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
