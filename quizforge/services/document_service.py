"""
Document lifecycle: upload, cover image, processing status, delete
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizforge.database import utcnow
from quizforge.exceptions import DocumentNotFoundError
from quizforge.models import Document
from quizforge.services.rotation_service import rotation_service
from quizforge.services.storage_service import storage_service

logger = logging.getLogger(__name__)


class DocumentService:

    def __init__(self, storage=None, rotation=None):
        self.storage = storage or storage_service
        self.rotation = rotation or rotation_service

    async def create_document(self, db: Session, name: str, data: bytes, filename: str) -> Document:
        """
        Upload the PDF blob and insert its metadata row

        If the insert fails the uploaded blob is deleted before the error
        propagates, so no orphaned file is left behind.
        """
        file_ref = await self.storage.upload(data, filename, folder="pdfs")

        try:
            document = Document(name=name, file_ref=file_ref, processing_status="pending")
            db.add(document)
            db.commit()
            db.refresh(document)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save document metadata, removing blob {file_ref}: {str(e)}")
            await self.storage.delete(file_ref)
            raise

        logger.info(f"Document created: {document.id}")
        return document

    def get_document(self, db: Session, document_id: UUID) -> Document:
        document = db.query(Document).filter(Document.id == document_id).first()
        if not document:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def list_documents(self, db: Session) -> List[Document]:
        return db.query(Document).order_by(Document.created_at.desc()).all()

    async def read_pdf(self, document: Document) -> bytes:
        return await self.storage.read(document.file_ref)

    async def update_cover(
        self,
        db: Session,
        document_id: UUID,
        data: Optional[bytes] = None,
        filename: str = None
    ) -> Document:
        """Replace the cover image; ``data=None`` clears it"""
        document = self.get_document(db, document_id)
        previous = document.cover_ref

        new_ref = await self.storage.upload(data, filename or "cover", folder="covers") if data else None
        try:
            document.cover_ref = new_ref
            db.commit()
            db.refresh(document)
        except SQLAlchemyError:
            db.rollback()
            if new_ref:
                await self.storage.delete(new_ref)
            raise

        if previous:
            await self.storage.delete(previous)
        logger.info(f"Cover {'updated' if new_ref else 'cleared'} for document {document_id}")
        return document

    def set_processing_status(self, db: Session, document_id: UUID, status: str, error: str = None):
        """Record background processing progress; failures are logged only"""
        try:
            document = self.get_document(db, document_id)
            document.processing_status = status
            document.processing_error = error
            document.processing_updated_at = utcnow()
            db.commit()
        except (SQLAlchemyError, DocumentNotFoundError) as e:
            db.rollback()
            logger.error(f"Error updating processing status for {document_id}: {str(e)}")

    async def delete_document(self, db: Session, document_id: UUID):
        """Delete the row (template and attempts cascade), its blobs and rotation history"""
        document = self.get_document(db, document_id)
        refs = [ref for ref in (document.file_ref, document.cover_ref) if ref]

        db.delete(document)
        db.commit()

        for ref in refs:
            await self.storage.delete(ref)
        self.rotation.reset(document_id)
        logger.info(f"Document deleted: {document_id}")


# Global instance
document_service = DocumentService()
