"""
Provisioning Workflow — unlock, merge, (re)issue keys, persist, distribute.

One session walks these states::

    START → UNLOCKING → FRESH | RECOVERED | REJECTED
          → MERGING → KEY_DECIDING → REISSUING | PRESERVING
          → PERSISTING → DISTRIBUTING? → DONE

The session suspends only while waiting on the operator (``Prompter``) or on
container I/O, which runs in a worker thread. Nothing is written before
PERSISTING, so aborting earlier leaves every container untouched.

Security Note:
    Passwords live on the SessionContext for the duration of the session
    only and are excluded from its repr. Never log them.
"""
import asyncio
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

from .conf import SetupConfig
from .document import (
    ConfigurationDocument,
    CLIENT_KEYS_PASSWORD,
    RECREATE_KEYS,
)
from .exceptions import ContainerNotFound, CorruptContainer, WrongPassword
from .keys import KeyIssuer
from .vault import Vault

logger = logging.getLogger("cyphernode.setup")


class SessionState(str, Enum):
    START = "start"
    UNLOCKING = "unlocking"
    FRESH = "fresh"
    RECOVERED = "recovered"
    REJECTED = "rejected"
    MERGING = "merging"
    KEY_DECIDING = "key_deciding"
    REISSUING = "reissuing"
    PRESERVING = "preserving"
    PERSISTING = "persisting"
    DISTRIBUTING = "distributing"
    DONE = "done"


class Prompter(Protocol):
    """Operator-facing collaborator supplying passwords and answers."""

    async def ask_password(self, message: str) -> str:
        ...

    async def collect_answers(self, document: ConfigurationDocument) -> Mapping[str, Any]:
        ...

    async def notify(self, message: str) -> None:
        ...


@dataclass
class SessionContext:
    """State threaded through one provisioning session."""

    state: SessionState = SessionState.START
    document: Optional[ConfigurationDocument] = None
    config_password: Optional[str] = field(default=None, repr=False)
    previous_client_keys_password: Optional[str] = field(default=None, repr=False)
    keys_reissued: bool = False
    distributed: bool = False
    history: list[SessionState] = field(default_factory=lambda: [SessionState.START])

    def transition(self, state: SessionState) -> None:
        logger.debug("Session: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @property
    def fresh(self) -> bool:
        return SessionState.FRESH in self.history


class ProvisioningWorkflow:
    """Drives one provisioning session against the config and client-key containers."""

    def __init__(
        self,
        config: SetupConfig,
        prompter: Prompter,
        issuer: Optional[KeyIssuer] = None,
    ):
        self._config = config
        self._prompter = prompter
        self._issuer = issuer or KeyIssuer()
        self.config_vault = Vault(config.config_path, config.vault)
        self.client_keys_vault = Vault(config.client_keys_path, config.vault)

    async def run(self, *, recreate: bool = False, rotate_keys: bool = False) -> SessionContext:
        """Run a full session.

        Args:
            recreate: Skip answer collection and re-persist the stored document.
            rotate_keys: Force a new key hierarchy even if keys exist.

        Returns:
            The finished SessionContext (state DONE).

        Raises:
            WrongPassword: Environment-supplied password is wrong.
            CorruptContainer: The config container cannot be used.
            WriteFailure: A container could not be written.
            SetupAborted: The operator aborted before persisting.
        """
        ctx = SessionContext()
        await self.unlock(ctx)
        answers: dict[str, Any] = {}
        if not recreate:
            answers.update(await self._prompter.collect_answers(ctx.document))
        if rotate_keys:
            answers[RECREATE_KEYS] = True
        self.merge(ctx, answers)
        self.decide_keys(ctx)
        await self.persist(ctx)
        await self.distribute(ctx)
        ctx.transition(SessionState.DONE)
        logger.info(
            "Provisioning done: fresh=%s keys_reissued=%s distributed=%s",
            ctx.fresh, ctx.keys_reissued, ctx.distributed,
        )
        return ctx

    # ------------------------------------------------------------------
    # Unlocking
    # ------------------------------------------------------------------

    async def unlock(self, ctx: SessionContext) -> None:
        ctx.transition(SessionState.UNLOCKING)
        if not self.config_vault.exists():
            await self._start_fresh(ctx)
            return
        env_password = self._config.config_password
        while True:
            if env_password is not None:
                password = env_password.get_secret_value()
            else:
                password = await self._prompter.ask_password(
                    "Enter your configuration password?"
                )
                if not password:
                    continue
            try:
                document = await asyncio.to_thread(self._read_config, password)
            except ContainerNotFound:
                # removed between the existence check and the read
                await self._start_fresh(ctx, password)
                return
            except WrongPassword:
                if env_password is not None:
                    ctx.transition(SessionState.REJECTED)
                    raise
                logger.warning("Wrong password for %s", self.config_vault.path)
                await self._prompter.notify("Password is wrong.")
                continue
            except CorruptContainer:
                ctx.transition(SessionState.REJECTED)
                raise
            break
        ctx.config_password = password
        ctx.document = document
        ctx.previous_client_keys_password = document.get(CLIENT_KEYS_PASSWORD)
        ctx.transition(SessionState.RECOVERED)

    def _read_config(self, password: str) -> ConfigurationDocument:
        container = self.config_vault.open(password)
        body = self.config_vault.read_document(container, self._config.config_document)
        return ConfigurationDocument.decode(body)

    async def _start_fresh(self, ctx: SessionContext, password: Optional[str] = None) -> None:
        if password is None and self._config.config_password is not None:
            password = self._config.config_password.get_secret_value()
        while not password:
            first = await self._prompter.ask_password("Choose your configuration password")
            second = await self._prompter.ask_password("Confirm your configuration password")
            if first and second and first != second:
                await self._prompter.notify("Passwords do not match")
            elif first and first == second:
                password = first
        ctx.config_password = password
        ctx.document = ConfigurationDocument()
        ctx.previous_client_keys_password = None
        ctx.transition(SessionState.FRESH)

    # ------------------------------------------------------------------
    # Merging and keys
    # ------------------------------------------------------------------

    def merge(self, ctx: SessionContext, answers: Mapping[str, Any]) -> None:
        ctx.transition(SessionState.MERGING)
        ctx.document.merge(answers)
        ctx.document.assign_defaults()

    def decide_keys(self, ctx: SessionContext) -> None:
        ctx.transition(SessionState.KEY_DECIDING)
        document = ctx.document
        rotate = bool(document.pop(RECREATE_KEYS, False))
        if rotate or not document.has_auth_keys:
            ctx.transition(SessionState.REISSUING)
            document.auth_keys = self._issuer.issue_default_hierarchy()
            ctx.keys_reissued = True
        else:
            ctx.transition(SessionState.PRESERVING)

    # ------------------------------------------------------------------
    # Persisting
    # ------------------------------------------------------------------

    async def persist(self, ctx: SessionContext) -> None:
        ctx.transition(SessionState.PERSISTING)
        await asyncio.to_thread(
            self.config_vault.write_document,
            ctx.config_password,
            self._config.config_document,
            ctx.document.encode(),
        )
        ctx.document.is_changed = False

    async def distribute(self, ctx: SessionContext) -> None:
        password = ctx.document.get(CLIENT_KEYS_PASSWORD)
        if not password:
            return
        ctx.transition(SessionState.DISTRIBUTING)
        if password != ctx.previous_client_keys_password:
            removed = await asyncio.to_thread(self.client_keys_vault.delete)
            if removed:
                logger.info("Client keys password changed, stale container removed")
        lines = "\n".join(ctx.document.auth_keys.client_information)
        await asyncio.to_thread(
            self.client_keys_vault.write_document,
            password,
            self._config.client_keys_document,
            lines.encode("utf-8"),
        )
        ctx.distributed = True
