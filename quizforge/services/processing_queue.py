"""
Background document processing queue

A FIFO of document ids drained one job at a time by a single asyncio task.
The task runs until the queue is empty and then exits; the next enqueue
starts a new one.
"""
import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Optional
from uuid import UUID

from quizforge.services.quiz_service import quiz_service

logger = logging.getLogger(__name__)


class ProcessingQueue:

    def __init__(self, handler: Callable[[UUID], Awaitable[None]]):
        self.handler = handler
        self._queue: Deque[UUID] = deque()
        self._draining = False
        self._current: Optional[UUID] = None
        self._task: Optional[asyncio.Task] = None

    def __len__(self):
        return len(self._queue)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def enqueue(self, document_id: UUID) -> bool:
        """
        Queue a document; starts the drain task if none is running

        Must be called from within the running event loop. Returns False
        when the document is already queued or being processed.
        """
        if document_id in self._queue or document_id == self._current:
            logger.info(f"Document {document_id} is already queued for processing")
            return False

        self._queue.append(document_id)
        logger.info(f"Queued document {document_id}, total items: {len(self._queue)}")

        # Checked and set in the same synchronous step
        if not self._draining:
            self._draining = True
            self._task = asyncio.get_running_loop().create_task(self._drain())
        return True

    async def _drain(self):
        try:
            while self._queue:
                document_id = self._queue.popleft()
                self._current = document_id
                logger.info(f"Processing document {document_id} - remaining items: {len(self._queue)}")
                try:
                    await self.handler(document_id)
                except Exception as e:
                    logger.error(f"Error processing document {document_id}: {str(e)}", exc_info=True)
                finally:
                    self._current = None
            logger.info("Processing queue is empty, stopping worker")
        finally:
            self._draining = False
            self._task = None

    def status(self, document_id: UUID) -> Optional[Dict[str, int]]:
        """Queue position of a document, or None if it is not waiting"""
        if document_id == self._current:
            return {"position": 0, "total": len(self._queue)}
        for position, queued in enumerate(self._queue, start=1):
            if queued == document_id:
                return {"position": position, "total": len(self._queue)}
        return None

    async def join(self):
        """Wait until the current drain task finishes"""
        task = self._task
        if task is not None:
            await task

    async def shutdown(self):
        """Cancel the drain task and drop pending jobs"""
        self._queue.clear()
        task = self._task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Processing queue shut down")


# Global instance
processing_queue = ProcessingQueue(quiz_service.process_document)
