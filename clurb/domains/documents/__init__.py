from clurb.domains.documents.entities import (
    Document, DocumentAccess, Invitation, InvitationStatus, Membership, Role
)
from clurb.domains.documents.schemas import (
    DocumentBase, DocumentCreate, DocumentUpdate, DocumentResponse,
    DocumentListResponse, PageCountUpdate, MemberResponse,
    InvitationCreate, InvitationRespond, InvitationResponse
)

__all__ = [
    "Document", "DocumentAccess", "Invitation", "InvitationStatus", "Membership", "Role",
    "DocumentBase", "DocumentCreate", "DocumentUpdate", "DocumentResponse",
    "DocumentListResponse", "PageCountUpdate", "MemberResponse",
    "InvitationCreate", "InvitationRespond", "InvitationResponse"
]
