import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from dotenv import load_dotenv

from keyvault import (
    DECRYPT_PRIVATE_KEY_EVENT,
    SIGN_TX_EVENT,
    DecryptionRequest,
    KeyVault,
    KeyVaultError,
    SigningRequest,
    VaultSettings,
    build_key_vault,
)
from keyvault.codec import private_key_to_address
from keyvault.utils.config_manager import ConfigManager

logger = logging.getLogger("cli")

DEFAULT_TOPIC = "ethereum"


class KeyVaultCLI:
    """
    Terminal front end for a KeyVault.

    The CLI is the confirmation UI: it subscribes to both vault events and
    answers them from the terminal (hidden password prompt, y/N question).
    """

    def __init__(
        self,
        vault: KeyVault,
        *,
        password_prompt: Callable[[str], str] = getpass.getpass,
        input_func: Callable[[str], str] = input,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ):
        self.vault = vault
        self.password_prompt = password_prompt
        self.input_func = input_func
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self._unsubscribe = [
            vault.bus.subscribe(DECRYPT_PRIVATE_KEY_EVENT, self._on_decrypt_request),
            vault.bus.subscribe(SIGN_TX_EVENT, self._on_sign_request),
        ]

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    def _print(self, message: str = "") -> None:
        print(message, file=self.out)

    def _confirm(self, question: str) -> bool:
        return self.input_func(f"{question} (y/N): ").strip().lower().startswith("y")

    # ------------------------------------------------------------------ #
    # Confirmation listeners
    # ------------------------------------------------------------------ #
    def _on_decrypt_request(self, request: DecryptionRequest) -> None:
        self._print(f"[{request.topic}] Access to a private key requested: {request.reason}")
        password = self.password_prompt("Password (leave empty to abort): ")
        if password:
            request.approve(password)
        else:
            request.abort()

    def _on_sign_request(self, request: SigningRequest) -> None:
        self._print("Transaction to sign:")
        self._print(json.dumps(dict(request.transaction), indent=2))
        if self._confirm("Sign this transaction?"):
            request.confirm()
        else:
            request.abort()

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def _ask_new_password(self, encrypt: bool) -> tuple:
        if not encrypt:
            self._print("WARNING: the private key will be stored unencrypted.")
            return None, None
        password = self.password_prompt("Password: ")
        confirmation = self.password_prompt("Confirm password: ")
        return password, confirmation

    async def _save(self, key: str, encrypt: bool) -> str:
        password, confirmation = self._ask_new_password(encrypt)
        await self.vault.save_private_key(key, password, confirmation)
        return private_key_to_address(key)

    async def create(self, args: argparse.Namespace) -> int:
        key = await self.vault.create_private_key()
        address = await self._save(key, args.encrypt)
        self._print(f"Created key for {address}")
        return 0

    async def import_key(self, args: argparse.Namespace) -> int:
        key = self.password_prompt("Private key (64 hex chars, no 0x): ").strip()
        address = await self._save(key, args.encrypt)
        self._print(f"Imported key for {address}")
        return 0

    async def import_mnemonic(self, args: argparse.Namespace) -> int:
        phrase = self.password_prompt("Mnemonic phrase: ")
        key = self.vault.mnemonic_to_private_key(phrase)
        address = await self._save(key, args.encrypt)
        self._print(f"Imported key for {address}")
        return 0

    async def list_keys(self, args: argparse.Namespace) -> int:
        pairs = await self.vault.all_key_pairs()
        if not pairs:
            self._print("No keys stored.")
            return 0
        for address, record in sorted(pairs.items()):
            protection = record.encryption.value or "plaintext"
            self._print(f"{address}  {protection}")
        return 0

    async def _reveal(self, address: str, reason: str) -> str:
        record = await self.vault.get_private_key(address)
        return await self.vault.decrypt_private_key(record, reason, DEFAULT_TOPIC)

    async def show(self, args: argparse.Namespace) -> int:
        key = await self._reveal(args.address, "display private key")
        self._print(key)
        return 0

    async def mnemonic(self, args: argparse.Namespace) -> int:
        key = await self._reveal(args.address, "export mnemonic")
        self._print(" ".join(self.vault.private_key_to_mnemonic(key)))
        return 0

    async def delete(self, args: argparse.Namespace) -> int:
        await self.vault.get_private_key(args.address)
        if not args.yes and not self._confirm(f"Delete the key for {args.address}?"):
            self._print("Aborted.")
            return 1
        await self.vault.delete_private_key(args.address)
        self._print(f"Deleted key for {args.address}")
        return 0

    async def sign(self, args: argparse.Namespace) -> int:
        tx_data = {
            "nonce": args.nonce,
            "gasPrice": args.gas_price,
            "gas": args.gas,
            "to": args.to,
            "value": args.value,
            "data": args.data,
        }
        if args.chain_id is not None:
            tx_data["chainId"] = args.chain_id
        key = await self._reveal(args.address, "sign transaction")
        signed = await self.vault.sign_tx(tx_data, key)
        self._print(signed.hex())
        return 0

    async def run(self, args: argparse.Namespace) -> int:
        handlers = {
            "create": self.create,
            "import": self.import_key,
            "import-mnemonic": self.import_mnemonic,
            "list": self.list_keys,
            "show": self.show,
            "mnemonic": self.mnemonic,
            "delete": self.delete,
            "sign": self.sign,
        }
        try:
            return await handlers[args.command](args)
        except KeyVaultError as exc:
            logger.debug("Command %s failed", args.command, exc_info=True)
            print(f"Error: {exc}", file=self.err)
            return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="keyvault", description="Local Ethereum key vault")
    parser.add_argument("--config", default=None, help="Path to config.json")
    parser.add_argument("--store", default=None, help="Path of a file secure store (overrides the configured backend)")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("create", "Generate and store a new private key"),
        ("import", "Store an existing private key"),
        ("import-mnemonic", "Store the private key encoded by a mnemonic"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--encrypt", action="store_true", help="Encrypt the key with a password")

    sub.add_parser("list", help="List stored addresses")

    for name, help_text in (
        ("show", "Reveal a stored private key"),
        ("mnemonic", "Reveal a stored private key as a mnemonic"),
    ):
        sub.add_parser(name, help=help_text).add_argument("address")

    delete = sub.add_parser("delete", help="Delete a stored private key")
    delete.add_argument("address")
    delete.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sign = sub.add_parser("sign", help="Sign a legacy transaction")
    sign.add_argument("address")
    sign.add_argument("--nonce", required=True)
    sign.add_argument("--gas-price", required=True)
    sign.add_argument("--gas", required=True)
    sign.add_argument("--to", required=True)
    sign.add_argument("--value", default="0x0")
    sign.add_argument("--data", default="0x")
    sign.add_argument("--chain-id", default=None)
    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(message)s")
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()
    try:
        settings = VaultSettings.load(ConfigManager(args.config))
    except KeyVaultError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if args.store:
        settings = settings.model_copy(update={"storage_backend": "file", "storage_path": Path(args.store)})
    _configure_logging(settings.log_level)

    cli = KeyVaultCLI(build_key_vault(settings))
    try:
        return asyncio.run(cli.run(args))
    finally:
        cli.close()


if __name__ == "__main__":
    raise SystemExit(main())
