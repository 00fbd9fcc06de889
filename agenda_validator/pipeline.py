"""
Validation pipeline for agenda metadata files.

Steps run in a fixed order and stop at the first failure:

    schema -> format -> pr-title -> time -> signature -> transaction

Any subset of the steps can be requested; the order stays the same.
"""
import json
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import requests
from web3.exceptions import Web3Exception

from .abi import AgendaAbiCodec
from .config import NetworkConfig
from .constants import PR_TITLE_CREATE_PREFIX, PR_TITLE_UPDATE_PREFIX
from .exceptions import AgendaValidatorError, MetadataFileError
from .models import AgendaMetadata, validate_schema
from .onchain import OnChainValidator
from .provider import ChainDataProvider, Web3ChainProvider
from .remote import RemoteFileChecker
from .signature import validate_agenda_signature, validate_signature_timestamp
from .utils import (
    extract_id_from_filename, extract_network_from_path, is_valid_agenda_filename,
    parse_pr_title, parse_timestamp,
)

logger = logging.getLogger(__name__)

ALL_STEPS = "all"


class ValidationStep(str, Enum):
    """Validation steps in execution order"""
    SCHEMA = "schema"
    FORMAT = "format"
    PR_TITLE = "pr-title"
    TIME = "time"
    SIGNATURE = "signature"
    TRANSACTION = "transaction"


def parse_steps(steps: Union[str, Iterable[str], None]) -> List[ValidationStep]:
    """
    Turn a comma-separated string or list of step names into ordered steps.

    "all" (or nothing) selects every step.

    Raises:
        ValueError: If a step name is unknown
    """
    if steps is None:
        names: List[str] = [ALL_STEPS]
    elif isinstance(steps, str):
        names = [s.strip() for s in steps.split(",") if s.strip()]
    else:
        names = [s.value if isinstance(s, ValidationStep) else str(s).strip() for s in steps]

    if not names or ALL_STEPS in names:
        return list(ValidationStep)

    known = {step.value: step for step in ValidationStep}
    unknown = [name for name in names if name not in known]
    if unknown:
        available = ", ".join([step.value for step in ValidationStep] + [ALL_STEPS])
        raise ValueError(f"Unknown validation step(s): {', '.join(unknown)}. Available steps: {available}")

    selected = {known[name] for name in names}
    return [step for step in ValidationStep if step in selected]


@dataclass
class StepOutcome:
    """Result of one validation step"""
    step: ValidationStep
    passed: bool
    reason: str = ""


@dataclass
class FileVerdict:
    """Final verdict for one metadata file"""
    file_path: str
    valid: bool
    outcomes: List[StepOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed_step(self) -> Optional[ValidationStep]:
        for outcome in self.outcomes:
            if not outcome.passed:
                return outcome.step
        return None


@dataclass
class ValidationContext:
    """Everything a step may need besides the document itself"""
    file_path: str
    pr_title: str
    remote_checker: RemoteFileChecker
    provider_factory: Callable[[str], ChainDataProvider]
    codec: AgendaAbiCodec
    clock: Callable[[], datetime]
    metadata: Optional[AgendaMetadata] = None
    schema_errors: List[str] = field(default_factory=list)

    def parse(self, document: Any) -> Optional[AgendaMetadata]:
        """Parse the document once and remember the result."""
        if self.metadata is None and not self.schema_errors:
            result = validate_schema(document)
            self.metadata = result.metadata
            self.schema_errors = result.errors
        return self.metadata


class Step(ABC):
    """A single validation step"""
    step: ValidationStep

    def run(self, document: Any, context: ValidationContext) -> StepOutcome:
        metadata = context.parse(document)
        if metadata is None:
            return self.fail(
                "Metadata does not match the schema: " + "; ".join(context.schema_errors)
            )
        return self.check(metadata, context)

    @abstractmethod
    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        ...

    def ok(self) -> StepOutcome:
        return StepOutcome(self.step, True)

    def fail(self, reason: str) -> StepOutcome:
        return StepOutcome(self.step, False, reason)


class SchemaStep(Step):
    step = ValidationStep.SCHEMA

    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        # Reaching check() means the document parsed
        return self.ok()


class FormatStep(Step):
    """File name and storage path must agree with the document."""
    step = ValidationStep.FORMAT

    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        path = context.file_path
        filename = path.replace("\\", "/").rsplit("/", 1)[-1]
        if not is_valid_agenda_filename(filename):
            return self.fail(f"File name must match agenda-<id>.json: {filename}")

        network_from_path = extract_network_from_path(path)
        if network_from_path is None:
            return self.fail(f"Could not extract network from file path: {path}")

        id_from_filename = extract_id_from_filename(path)
        if metadata.network != network_from_path:
            return self.fail(
                f'Network mismatch: metadata.network="{metadata.network}", path network="{network_from_path}"'
            )
        if metadata.id != id_from_filename:
            return self.fail(f"ID mismatch: metadata.id={metadata.id}, filename ID={id_from_filename}")
        return self.ok()


class PrTitleStep(Step):
    """PR title must name the same network and id, and match create/update state."""
    step = ValidationStep.PR_TITLE

    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        info = parse_pr_title(context.pr_title)
        if info is None:
            return self.fail(
                'PR title must be "[Agenda] <network> - <id> - <title>" or '
                f'"[Agenda Update] <network> - <id> - <title>". Actual: "{context.pr_title}"'
            )

        prefix = PR_TITLE_UPDATE_PREFIX if info.is_update else PR_TITLE_CREATE_PREFIX
        expected = f"{prefix} {metadata.network} - {metadata.id} - <title>"
        if info.network != metadata.network or info.id != metadata.id:
            return self.fail(f'PR title format error. Expected: "{expected}", Actual: "{context.pr_title}"')

        if info.is_update != metadata.is_update:
            if info.is_update:
                return self.fail("Update PR requires updatedAt in the metadata")
            return self.fail("Create PR must not carry updatedAt in the metadata")

        if info.title != metadata.title:
            logger.warning(f'PR title text "{info.title}" differs from metadata title "{metadata.title}"')

        exists = context.remote_checker.exists(context.file_path)
        if info.is_update and not exists:
            return self.fail(
                f"Update operation requires existing file on GitHub main branch, "
                f"but {context.file_path} does not exist"
            )
        if not info.is_update and exists:
            return self.fail(
                f"Create operation requires new file, "
                f"but {context.file_path} already exists on GitHub main branch"
            )
        return self.ok()


class TimeStep(Step):
    """The signed timestamp must be fresh; updates must come after creation."""
    step = ValidationStep.TIME

    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        timestamp = metadata.signature_timestamp
        if not validate_signature_timestamp(timestamp, now=context.clock()):
            field_name = "updatedAt" if metadata.is_update else "createdAt"
            return self.fail(f"{field_name} {timestamp} is invalid or outside the 1 hour signing window")

        if metadata.is_update:
            created = parse_timestamp(metadata.created_at)
            updated = parse_timestamp(metadata.updated_at)
            if updated <= created:
                return self.fail(
                    f"updatedAt must be later than createdAt "
                    f"(createdAt: {metadata.created_at}, updatedAt: {metadata.updated_at})"
                )
        return self.ok()


class SignatureStep(Step):
    step = ValidationStep.SIGNATURE

    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        if not validate_agenda_signature(metadata):
            return self.fail(f"Creator signature does not recover to {metadata.creator.address}")
        return self.ok()


class TransactionStep(Step):
    """Transaction sender, AgendaCreated event and calldata must match the metadata."""
    step = ValidationStep.TRANSACTION

    def check(self, metadata: AgendaMetadata, context: ValidationContext) -> StepOutcome:
        try:
            provider = context.provider_factory(metadata.network)
            result = OnChainValidator(provider, context.codec).validate(metadata)
        except (AgendaValidatorError, Web3Exception, requests.RequestException,
                ConnectionError, TimeoutError) as e:
            return self._fail_with_link(str(e), metadata)
        if not result.valid:
            return self._fail_with_link("; ".join(result.failures), metadata)
        return self.ok()

    def _fail_with_link(self, reason: str, metadata: AgendaMetadata) -> StepOutcome:
        link = NetworkConfig.tx_url(metadata.network, metadata.transaction)
        return self.fail(f"{reason} (see {link})")


STEP_REGISTRY: Dict[ValidationStep, Step] = {
    step.step: step for step in (
        SchemaStep(), FormatStep(), PrTitleStep(), TimeStep(), SignatureStep(), TransactionStep(),
    )
}


def load_metadata_file(file_path: str) -> Any:
    """
    Read and parse a UTF-8 JSON metadata file.

    Raises:
        MetadataFileError: If the file cannot be read or parsed
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MetadataFileError(f"Failed to read {file_path}: {e}") from e


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AgendaMetadataValidator:
    """
    Runs the validation pipeline over agenda metadata files.

    Args:
        remote_checker: Existence checker for the remote repository
        provider_factory: Builds a chain-data provider for a network name
        codec: ABI codec shared by the on-chain checks
        clock: Returns the current time (aware datetime)
        max_workers: Thread pool size for multi-file runs
    """

    def __init__(
        self,
        remote_checker: Optional[RemoteFileChecker] = None,
        provider_factory: Optional[Callable[[str], ChainDataProvider]] = None,
        codec: Optional[AgendaAbiCodec] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_workers: int = 4
    ):
        self.remote_checker = remote_checker or RemoteFileChecker()
        self.provider_factory = provider_factory or Web3ChainProvider.from_network
        self.codec = codec or AgendaAbiCodec()
        self.clock = clock or _utc_now
        self.max_workers = max_workers

    def validate_document(
        self,
        document: Any,
        file_path: str,
        pr_title: str,
        steps: Union[str, Sequence[str], None] = None
    ) -> FileVerdict:
        """
        Run the selected steps over an already parsed document.

        Raises:
            ValueError: If a step name is unknown
        """
        selected = parse_steps(steps)
        context = ValidationContext(
            file_path=file_path,
            pr_title=pr_title,
            remote_checker=self.remote_checker,
            provider_factory=self.provider_factory,
            codec=self.codec,
            clock=self.clock,
        )

        logger.info(f"Starting validation of {file_path} with steps: {', '.join(s.value for s in selected)}")
        outcomes = []
        for step in selected:
            logger.info(f"Running {step.value} validation")
            outcome = STEP_REGISTRY[step].run(document, context)
            outcomes.append(outcome)
            if not outcome.passed:
                logger.error(f"{step.value} validation failed: {outcome.reason}")
                return FileVerdict(file_path=file_path, valid=False, outcomes=outcomes)
            logger.info(f"{step.value} validation passed")

        return FileVerdict(file_path=file_path, valid=True, outcomes=outcomes)

    def validate_file(
        self,
        file_path: str,
        pr_title: str,
        steps: Union[str, Sequence[str], None] = None
    ) -> FileVerdict:
        """Read one metadata file and run the pipeline over it."""
        try:
            document = load_metadata_file(file_path)
        except MetadataFileError as e:
            logger.error(str(e))
            return FileVerdict(file_path=file_path, valid=False, error=str(e))
        return self.validate_document(document, file_path, pr_title, steps)

    def validate_files(
        self,
        file_paths: Sequence[str],
        pr_title: str,
        steps: Union[str, Sequence[str], None] = None,
        allow_multiple: bool = False
    ) -> List[FileVerdict]:
        """
        Validate several files and return their verdicts in input order.

        A PR may change exactly one agenda file; unless `allow_multiple` is
        set, more than one path fails every file without running any step.
        With `allow_multiple`, files are validated concurrently.
        """
        parse_steps(steps)
        if len(file_paths) > 1 and not allow_multiple:
            error = f"Exactly one agenda metadata file may be submitted per PR, got {len(file_paths)}"
            logger.error(error)
            return [FileVerdict(file_path=path, valid=False, error=error) for path in file_paths]

        if len(file_paths) <= 1:
            return [self.validate_file(path, pr_title, steps) for path in file_paths]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(file_paths))) as executor:
            futures = [executor.submit(self.validate_file, path, pr_title, steps) for path in file_paths]
            return [future.result() for future in futures]


def validate_metadata(
    file_path: str,
    pr_title: str,
    steps: Union[str, Sequence[str], None] = None,
    **kwargs
) -> FileVerdict:
    """Validate a single metadata file with a default-configured validator."""
    return AgendaMetadataValidator(**kwargs).validate_file(file_path, pr_title, steps)
