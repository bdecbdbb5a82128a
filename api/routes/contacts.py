"""
api/routes/contacts.py -- Address book routes.

Routes:
  GET    /contacts
  POST   /contacts
  GET    /contacts/{id}
  PUT    /contacts/{id}
  DELETE /contacts/{id}

Contacts are shared by every authenticated user; there is no owner column.
A 404 here means the id does not exist at all.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import ContactIn, ContactResponse
from auth.dependencies import get_principal, require_permission
from auth.models import Permission
from core.errors import NotFound
from records.models import Contact
from records.store import RecordStore

router = APIRouter(dependencies=[Depends(get_principal)])

_read = Depends(require_permission(Permission.contacts_read))
_write = Depends(require_permission(Permission.contacts_write))


@router.get("/contacts", response_model=list[ContactResponse], dependencies=[_read])
def list_contacts(request: Request) -> list[ContactResponse]:
    records: RecordStore = request.app.state.records
    return [ContactResponse.from_contact(c) for c in records.list_contacts()]


@router.post("/contacts", response_model=ContactResponse, status_code=201, dependencies=[_write])
def create_contact(request: Request, body: ContactIn) -> ContactResponse:
    records: RecordStore = request.app.state.records
    contact_id = records.create_contact(Contact(**body.model_dump()))
    contact = records.get_contact(contact_id)
    if contact is None:
        # Deleted by another request between the insert and this read.
        raise NotFound()
    return ContactResponse.from_contact(contact)


@router.get("/contacts/{contact_id}", response_model=ContactResponse, dependencies=[_read])
def get_contact(request: Request, contact_id: int) -> ContactResponse:
    records: RecordStore = request.app.state.records
    contact = records.get_contact(contact_id)
    if contact is None:
        raise NotFound()
    return ContactResponse.from_contact(contact)


@router.put("/contacts/{contact_id}", response_model=ContactResponse, dependencies=[_write])
def update_contact(request: Request, contact_id: int, body: ContactIn) -> ContactResponse:
    records: RecordStore = request.app.state.records
    updated = records.update_contact(contact_id, **body.model_dump())
    if updated is None:
        raise NotFound()
    return ContactResponse.from_contact(updated)


@router.delete("/contacts/{contact_id}", status_code=204, dependencies=[_write])
def delete_contact(request: Request, contact_id: int) -> Response:
    records: RecordStore = request.app.state.records
    if not records.delete_contact(contact_id):
        raise NotFound()
    return Response(status_code=204)
