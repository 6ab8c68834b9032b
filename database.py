"""Transfer history storage."""

import sqlite3
import logging
from typing import Optional, List, Dict, Any
from pathlib import Path
import asyncio

from core.types import TransferRequest, TransferStatus

logger = logging.getLogger(__name__)


class TransferHistory:
    """SQLite record of submitted cross-chain transfers."""

    def __init__(self, db_path: str = "bridge.db"):
        """Initialize the history store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        logger.info(f"Initialized transfer history at {db_path}")

    async def start(self) -> None:
        """Open the connection and create tables."""
        await asyncio.get_event_loop().run_in_executor(None, self._init_db)
        logger.info("Transfer history started")

    def _init_db(self) -> None:
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        # Amounts and fees are uint256, stored as decimal text
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS transfers (
                tx_hash TEXT PRIMARY KEY,
                netuid TEXT NOT NULL,
                source_chain TEXT NOT NULL,
                destination_chain TEXT NOT NULL,
                amount TEXT NOT NULL,
                recipient TEXT NOT NULL,
                native_fee TEXT NOT NULL,
                status TEXT NOT NULL,
                last_status_name TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE INDEX IF NOT EXISTS idx_transfers_created
                ON transfers(created_at);
        """)
        self.conn.commit()

    async def stop(self) -> None:
        """Close database connection."""
        if self.conn:
            await asyncio.get_event_loop().run_in_executor(None, self.conn.close)
            self.conn = None
        logger.info("Transfer history stopped")

    async def record_submission(
        self,
        tx_hash: str,
        request: TransferRequest,
        native_fee: int
    ) -> None:
        """Record a broadcast send transaction.

        Args:
            tx_hash: Source-chain transaction hash
            request: The submitted transfer
            native_fee: Fee paid in wei
        """
        def _save():
            self.conn.execute(
                """INSERT OR REPLACE INTO transfers
                   (tx_hash, netuid, source_chain, destination_chain,
                    amount, recipient, native_fee, status)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    tx_hash,
                    request.netuid,
                    request.source_chain,
                    request.destination_chain,
                    str(request.amount),
                    request.recipient,
                    str(native_fee),
                    TransferStatus.SUBMITTED.value,
                )
            )
            self.conn.commit()

        await asyncio.get_event_loop().run_in_executor(None, _save)
        logger.debug(f"Recorded transfer {tx_hash}")

    async def update_status(
        self,
        tx_hash: str,
        status: TransferStatus,
        last_status_name: Optional[str] = None
    ) -> None:
        """Store the latest lifecycle status of a transfer."""
        def _update():
            self.conn.execute(
                """UPDATE transfers
                   SET status = ?,
                       last_status_name = COALESCE(?, last_status_name),
                       updated_at = CURRENT_TIMESTAMP
                   WHERE tx_hash = ?""",
                (status.value, last_status_name, tx_hash)
            )
            self.conn.commit()

        await asyncio.get_event_loop().run_in_executor(None, _update)
        logger.debug(f"Transfer {tx_hash} -> {status.value}")

    async def get(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Get one transfer.

        Args:
            tx_hash: Source-chain transaction hash

        Returns:
            Row as a dict or None
        """
        def _get():
            cursor = self.conn.execute(
                "SELECT * FROM transfers WHERE tx_hash = ?",
                (tx_hash,)
            )
            row = cursor.fetchone()
            return dict(row) if row else None

        return await asyncio.get_event_loop().run_in_executor(None, _get)

    async def recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent transfers, newest first."""
        def _get():
            cursor = self.conn.execute(
                """SELECT * FROM transfers
                   ORDER BY created_at DESC, rowid DESC
                   LIMIT ?""",
                (limit,)
            )
            return [dict(row) for row in cursor.fetchall()]

        return await asyncio.get_event_loop().run_in_executor(None, _get)
