"""
/api/v1/documents endpoints.
Read-only view of a stored document and its latest results.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from docverify.dependencies import get_repository, verify_api_key
from docverify.models.enums import DocumentType
from docverify.repository.documents import DocumentRepository

router = APIRouter(prefix="/api/v1/documents", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.get("/{applicant_id}/{document_type}")
async def get_document(
    applicant_id: str,
    document_type: str,
    repository: DocumentRepository = Depends(get_repository),
):
    """Document record plus its extraction and validation results, if any."""
    resolved = DocumentType.resolve(document_type)
    if resolved is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported document type: {document_type}",
        )

    record = await repository.find_by_applicant_and_type(applicant_id, resolved)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    extraction = await repository.get_extraction(record.document_id)
    validation = await repository.get_validation(record.document_id)

    return {
        "document": record.model_dump(mode="json"),
        "extraction": extraction.model_dump(mode="json") if extraction else None,
        "validation": validation.model_dump(mode="json") if validation else None,
    }
