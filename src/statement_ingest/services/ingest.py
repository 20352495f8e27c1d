"""
Statement ingest service.

Upload workflow:
1. Validate size and extension
2. Store the file under upload_dir with a unique prefix
3. Create a statement record (pending -> processing) carrying the file
   hash; earlier uploads of identical bytes are reported, not rejected
4. Auto-parse; record bank, confidence and parser on success,
   the error message on failure
5. Return a preview of the parsed transactions

Confirm workflow: re-parse the stored file and commit every transaction
through the deduplication engine.
"""

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Optional

from ..config import IngestConfig
from ..detection import DetectionResult
from ..ledger import (
    BulkImportResult,
    CandidateTransaction,
    DeduplicationEngine,
    LedgerStore,
    StatementNotFoundError,
    StatementRecord,
    StatementStateError,
    StatementStatus,
)
from ..parsers.errors import IoError, ParseError, ParserError, UnsupportedFormat
from ..registry import ParserRegistry
from ..schemas.dedupe import compute_file_hash
from ..schemas.transaction import ParsedTransaction, ParseResult, ParserOptions

logger = logging.getLogger(__name__)


@dataclass
class UploadOutcome:
    """
    Result of a successful upload: the statement record plus a preview.

    previous_statement_id names the user's first earlier upload of the
    same file, if any.
    """

    statement: StatementRecord
    preview: list[ParsedTransaction] = field(default_factory=list)
    detection: Optional[DetectionResult] = None
    previous_statement_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "statement": self.statement.to_dict(),
            "preview": [t.to_dict() for t in self.preview],
            "detection": self.detection.to_dict() if self.detection else None,
            "previous_statement_id": self.previous_statement_id,
        }


class StatementIngestService:
    """Upload and import bank statements into the ledger."""

    def __init__(
        self,
        registry: ParserRegistry,
        store: LedgerStore,
        config: Optional[IngestConfig] = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.config = config or IngestConfig()
        self.engine = DeduplicationEngine(store)

    def _validate_upload(self, filename: str, data: bytes) -> str:
        """Return the file type tag, or raise for an unacceptable upload."""
        if not data:
            raise ParseError("No file data uploaded")

        if len(data) > self.config.max_file_size:
            raise ParseError(
                f"File too large. Maximum size is {self.config.max_file_size // (1024 * 1024)} MB"
            )

        extension = PurePath(filename).suffix.lstrip(".").lower()
        if extension not in self.config.allowed_extensions:
            allowed = ", ".join(f".{e}" for e in self.config.allowed_extensions)
            raise UnsupportedFormat(
                f"Unsupported file type: {extension or '(none)'}. "
                f"Only {allowed} files are supported."
            )

        return "excel"

    def _store_file(self, filename: str, data: bytes) -> Path:
        upload_dir = Path(self.config.upload_dir)
        try:
            upload_dir.mkdir(parents=True, exist_ok=True)
            # Basename only; the client-supplied name is not trusted as a path
            file_path = upload_dir / f"{uuid.uuid4()}_{PurePath(filename).name}"
            file_path.write_bytes(data)
        except OSError as e:
            raise IoError(f"Failed to store upload {filename}: {e}") from e
        return file_path

    def upload(
        self,
        user_id: int,
        filename: str,
        data: bytes,
        account_id: Optional[int] = None,
    ) -> UploadOutcome:
        """
        Store and parse an uploaded statement.

        Raises:
            UnsupportedFormat: Extension not allowed, or no parser handled the file
            ParseError: Empty or oversized upload, or a structural parse failure
            IoError: The file could not be stored
        """
        file_type = self._validate_upload(filename, data)
        file_hash = compute_file_hash(data)

        earlier = self.store.find_statements_by_file_hash(user_id, file_hash)
        previous_statement_id = earlier[0].id if earlier else None
        if previous_statement_id is not None:
            logger.info(
                "%s was already uploaded as statement %d", filename, previous_statement_id
            )

        file_path = self._store_file(filename, data)
        try:
            statement = self.store.create_statement(
                user_id=user_id,
                filename=filename,
                file_path=str(file_path),
                file_type=file_type,
                file_size=len(data),
                account_id=account_id,
                file_hash=file_hash,
            )
        except Exception:
            # No record points at the stored file
            file_path.unlink(missing_ok=True)
            raise
        self.store.set_statement_status(statement.id, StatementStatus.PROCESSING)

        try:
            result, detection = self.registry.auto_parse_with_detection(filename, data)
        except ParserError as e:
            logger.warning("Failed to parse statement %d (%s): %s", statement.id, filename, e)
            self.store.set_statement_status(statement.id, StatementStatus.FAILED, str(e))
            raise

        self.store.set_statement_completed(
            statement.id, len(result), result.start_date, result.end_date
        )
        self.store.set_statement_bank_info(
            statement.id,
            bank_name=result.bank_name,
            detection_confidence=detection.confidence_percent if detection else None,
            parser_used=detection.suggested_parser if detection else None,
        )

        logger.info(
            "Statement %d (%s): %d transactions, bank=%s",
            statement.id,
            filename,
            len(result),
            result.bank_name or "unknown",
        )

        return UploadOutcome(
            statement=self._get_owned_statement(user_id, statement.id),
            preview=list(result.transactions),
            detection=detection,
            previous_statement_id=previous_statement_id,
        )

    def _get_owned_statement(self, user_id: int, statement_id: int) -> StatementRecord:
        statement = self.store.get_statement(statement_id)
        # Another user's statement is reported as missing
        if statement is None or statement.user_id != user_id:
            raise StatementNotFoundError(f"Statement {statement_id} not found")
        return statement

    def reparse(self, user_id: int, statement_id: int) -> ParseResult:
        """Parse a stored statement file again."""
        statement = self._get_owned_statement(user_id, statement_id)
        try:
            data = Path(statement.file_path).read_bytes()
        except OSError as e:
            raise IoError(f"Failed to read statement file {statement.file_path}: {e}") from e

        return self.registry.auto_parse(statement.filename, data, ParserOptions())

    def confirm_import(
        self,
        user_id: int,
        statement_id: int,
        account_id: int,
    ) -> BulkImportResult:
        """
        Commit a completed statement's transactions into an account.

        Raises:
            StatementNotFoundError: Unknown statement, or owned by another user
            StatementStateError: Statement is not completed
        """
        statement = self._get_owned_statement(user_id, statement_id)
        if statement.status != StatementStatus.COMPLETED:
            raise StatementStateError(
                f"Statement {statement_id} is not ready for import "
                f"(status: {statement.status.value})"
            )

        result = self.reparse(user_id, statement_id)
        candidates = [
            CandidateTransaction.from_parsed(t, account_id, statement_id=statement.id)
            for t in result.transactions
        ]

        outcome = self.engine.bulk_commit(user_id, account_id, candidates)
        logger.info(
            "Imported statement %d: %d created, %d skipped",
            statement_id,
            outcome.created_count,
            outcome.skipped_count,
        )
        return outcome
