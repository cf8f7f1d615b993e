"""
Hardhat, driven as a subprocess.

Compilation produces artifacts/contracts/CustomToken.sol/CustomToken.json;
verification goes through the hardhat-verify plugin against the configured
explorer. Only exit status and a few stdout markers are interpreted.
"""
import json
import logging
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import BuildError
from .log import success

logger = logging.getLogger(__name__)

CONTRACT_NAME = "CustomToken"
ARTIFACT = Path("artifacts/contracts/CustomToken.sol/CustomToken.json")
CONFIG_FILE = "hardhat.config.cjs"
INSTALL_CMD = ["npm", "install", "--save-dev", "hardhat", "@nomicfoundation/hardhat-verify"]
VERIFY_MARKERS = ("verification submitted", "already been verified", "successfully verified")
VERIFY_ATTEMPTS = 3
VERIFY_DELAY = 5

CONFIG_TEMPLATE = """require("@nomicfoundation/hardhat-verify");

module.exports = {{
  solidity: "0.8.28",
  networks: {{
    "{network}": {{
      url: "{rpc_url}",
      chainId: {chain_id},
      accounts: [process.env.MAIN_PRIVATE_KEY]
    }}
  }},
  etherscan: {{
    apiKey: {{
      "{network}": process.env.EXPLORER_API_KEY || "{api_key}"
    }},
    customChains: [
      {{
        network: "{network}",
        chainId: {chain_id},
        urls: {{
          apiURL: "{api_url}",
          browserURL: "{browser_url}/"
        }}
      }}
    ]
  }},
  sourcify: {{
    enabled: false
  }}
}};
"""


class InstallFailed(BuildError):
    pass


@dataclass
class Artifact:
    abi: list
    bytecode: str


def npx():
    return shutil.which("npx") or "npx"


class Hardhat:
    def __init__(self, settings, project_dir=".", run=subprocess.run, sleep=time.sleep):
        self.settings = settings
        self.project_dir = Path(project_dir)
        self._run = run
        self._sleep = sleep

    def _exec(self, cmd):
        logger.debug(f"Running: {' '.join(cmd)}")
        return self._run(cmd, cwd=self.project_dir, capture_output=True, text=True)

    def is_installed(self):
        return (self.project_dir / "node_modules/hardhat/package.json").exists()

    def is_initialized(self):
        return (self.project_dir / CONFIG_FILE).exists()

    def write_config(self):
        content = CONFIG_TEMPLATE.format(
            network=self.settings.network_name,
            rpc_url=self.settings.rpc_urls[0],
            chain_id=self.settings.chain_id,
            api_key=self.settings.explorer_api_key,
            api_url=self.settings.explorer_api_url,
            browser_url=self.settings.explorer_url,
        )
        (self.project_dir / CONFIG_FILE).write_text(content)
        logger.info(f"Hardhat config updated with RPC: {self.settings.rpc_urls[0]}")

    def install(self):
        logger.info("Installing Hardhat and verification plugin...")
        try:
            proc = self._exec(INSTALL_CMD)
        except OSError as e:
            raise InstallFailed(f"Failed to install Hardhat: {e}") from e
        if proc.returncode != 0:
            raise InstallFailed(f"Failed to install Hardhat: {proc.stderr.strip() or proc.stdout.strip()}")
        success(logger, "Hardhat and verification plugin installed successfully.")

    def ensure_ready(self, confirm):
        """Install and initialize Hardhat if needed, asking `confirm(question)` first.

        Returns False when the operator declines a step; raises InstallFailed
        when installation is accepted but fails.
        """
        if not self.is_installed():
            if not confirm("Hardhat is not installed. Install now?"):
                logger.warning("Hardhat not installed. The contract cannot be compiled.")
                return False
            self.install()
        if not self.is_initialized():
            if not confirm("Hardhat project is not initialized. Initialize automatically?"):
                logger.warning("Hardhat project not initialized. The contract cannot be compiled.")
                return False
            logger.info("Initializing minimal Hardhat project...")
            self.write_config()
        return True

    def compile(self):
        logger.info("Running Hardhat compilation...")
        try:
            proc = self._exec([npx(), "hardhat", "compile"])
        except OSError as e:
            raise BuildError(f"Hardhat compilation failed: {e}") from e
        if proc.returncode != 0:
            logger.error(f"Hardhat compilation failed: {proc.stderr.strip()}")
            raise BuildError(f"Hardhat compilation failed with exit code {proc.returncode}")
        success(logger, "Hardhat compilation successful.")
        return self.load_artifact()

    def load_artifact(self):
        path = self.project_dir / ARTIFACT
        if not path.exists():
            raise BuildError(f"Artifact not found: {path}")
        with open(path) as f:
            artifact = json.load(f)
        bytecode = artifact["bytecode"]
        if isinstance(bytecode, dict):
            bytecode = bytecode["object"]
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode
        return Artifact(abi=artifact["abi"], bytecode=bytecode)

    def verify(self, address, constructor_args, attempts=VERIFY_ATTEMPTS, delay=VERIFY_DELAY):
        cmd = [npx(), "hardhat", "verify", "--network", self.settings.network_name, address]
        cmd += [str(arg) for arg in constructor_args]
        logger.info(f"Verifying contract with Hardhat: {' '.join(cmd)}")

        for attempt in range(1, attempts + 1):
            logger.info(f"Verification attempt: {attempt}/{attempts}")
            try:
                proc = self._exec(cmd)
                output = f"{proc.stdout}\n{proc.stderr}"
                if any(marker in output.lower() for marker in VERIFY_MARKERS):
                    success(logger, f"Hardhat verification successful: {proc.stdout.strip()}")
                    return True
                logger.warning(f"Attempt {attempt} failed (exit code {proc.returncode}). Output: {output.strip()}")
            except OSError as e:
                logger.error(f"Attempt {attempt} failed: {e}")
            if attempt < attempts:
                logger.info(f"Retrying contract verification in {delay} seconds...")
                self._sleep(delay)

        logger.error(f"Contract verification failed after {attempts} attempts. Please verify manually using Hardhat.")
        return False
