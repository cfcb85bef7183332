"""Command-line entry point: ``python -m cyphernode_setup``."""
import sys
import asyncio
import getpass
import logging
import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

import orjson
from pydantic import ValidationError as PydanticValidationError

from .conf import SetupConfig
from .document import ConfigurationDocument
from .exceptions import SetupAborted, SetupError, ValidationError
from .validators import validate_answer
from .workflow import ProvisioningWorkflow


class ConsolePrompter:
    """Prompter reading passwords from the terminal and answers from a JSON file.

    An answer rejected by its validator is asked again on the terminal.
    """

    def __init__(self, answers_file: Optional[Path] = None):
        self._answers_file = answers_file

    async def _ask(self, func, message: str) -> str:
        try:
            value = await asyncio.to_thread(func, message)
        except (EOFError, KeyboardInterrupt) as err:
            raise SetupAborted("Aborted by operator") from err
        return value.strip()

    async def ask_password(self, message: str) -> str:
        return await self._ask(getpass.getpass, f"{message} ")

    async def notify(self, message: str) -> None:
        print(message, file=sys.stderr)

    def _load_answers(self) -> dict[str, Any]:
        if self._answers_file is None:
            return {}
        try:
            answers = orjson.loads(self._answers_file.read_bytes())
        except (OSError, orjson.JSONDecodeError) as err:
            raise ValidationError(f"Cannot read answers from {self._answers_file}: {err}") from err
        if not isinstance(answers, dict):
            raise ValidationError(f"{self._answers_file} must hold a JSON object")
        return answers

    async def collect_answers(self, document: ConfigurationDocument) -> Mapping[str, Any]:
        answers = {}
        for name, value in self._load_answers().items():
            while True:
                try:
                    answers[name] = validate_answer(name, value)
                    break
                except ValidationError as err:
                    await self.notify(f"{name}: {err}")
                    value = await self._ask(input, f"{name} [{document.get(name, '')}]: ")
                    if not value:
                        value = document.get(name)
        return answers


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cyphernode_setup",
        description="Provision the cyphernode configuration vault and API keys.",
    )
    parser.add_argument(
        "mode", nargs="?", choices=["recreate"],
        help="re-persist the stored configuration without asking anything",
    )
    parser.add_argument("--dir", type=Path, default=None, help="directory holding the containers")
    parser.add_argument("--answers", type=Path, default=None, help="JSON file with option answers")
    parser.add_argument("--rotate-keys", action="store_true", help="issue a new API key hierarchy")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = SetupConfig.from_env(args.dir)
        workflow = ProvisioningWorkflow(config, ConsolePrompter(args.answers))
        asyncio.run(
            workflow.run(recreate=args.mode == "recreate", rotate_keys=args.rotate_keys)
        )
    except SetupAborted:
        print("Aborted, nothing was written.", file=sys.stderr)
        return 130
    except SetupError as err:
        print(f"error! {err}", file=sys.stderr)
        return 1
    except (PydanticValidationError, ValueError) as err:
        print(f"invalid settings: {err}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
