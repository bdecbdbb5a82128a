"""
api/routes/passwords.py -- Owner-scoped vault entry routes.

Routes:
  GET    /passwords          -- list the caller's entries
  POST   /passwords          -- create an entry owned by the caller
  GET    /passwords/{id}     -- one entry
  PUT    /passwords/{id}     -- replace an entry's fields
  DELETE /passwords/{id}     -- delete an entry

Ownership:
  The owner is always principal.user_id from the access-control guard. The
  request body has no owner field, and the store filters every lookup by
  owner. An entry belonging to another user gets the same 404 as an id that
  was never issued.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import PasswordEntryIn, PasswordEntryResponse
from auth.dependencies import get_principal, require_permission
from auth.models import Permission, Principal
from core.errors import NotFound
from records.models import PasswordEntry
from records.store import RecordStore

# Router-level dependency: no handler below runs without a valid bearer token.
router = APIRouter(dependencies=[Depends(get_principal)])

_read = require_permission(Permission.passwords_read)
_write = require_permission(Permission.passwords_write)


@router.get("/passwords", response_model=list[PasswordEntryResponse])
def list_passwords(request: Request, principal: Principal = Depends(_read)) -> list[PasswordEntryResponse]:
    records: RecordStore = request.app.state.records
    return [PasswordEntryResponse.from_entry(e) for e in records.list_passwords(principal.user_id)]


@router.post("/passwords", response_model=PasswordEntryResponse, status_code=201)
def create_password(
    request: Request,
    body: PasswordEntryIn,
    principal: Principal = Depends(_write),
) -> PasswordEntryResponse:
    records: RecordStore = request.app.state.records
    entry = PasswordEntry(owner_id=principal.user_id, **body.model_dump())
    entry_id = records.create_password(entry)
    created = records.get_password(entry_id, principal.user_id)
    if created is None:
        # Deleted by another request between the insert and this read.
        raise NotFound()
    return PasswordEntryResponse.from_entry(created)


@router.get("/passwords/{entry_id}", response_model=PasswordEntryResponse)
def get_password(
    request: Request,
    entry_id: int,
    principal: Principal = Depends(_read),
) -> PasswordEntryResponse:
    records: RecordStore = request.app.state.records
    entry = records.get_password(entry_id, principal.user_id)
    if entry is None:
        raise NotFound()
    return PasswordEntryResponse.from_entry(entry)


@router.put("/passwords/{entry_id}", response_model=PasswordEntryResponse)
def update_password(
    request: Request,
    entry_id: int,
    body: PasswordEntryIn,
    principal: Principal = Depends(_write),
) -> PasswordEntryResponse:
    records: RecordStore = request.app.state.records
    updated = records.update_password(entry_id, principal.user_id, **body.model_dump())
    if updated is None:
        raise NotFound()
    return PasswordEntryResponse.from_entry(updated)


@router.delete("/passwords/{entry_id}", status_code=204)
def delete_password(
    request: Request,
    entry_id: int,
    principal: Principal = Depends(_write),
) -> Response:
    records: RecordStore = request.app.state.records
    if not records.delete_password(entry_id, principal.user_id):
        raise NotFound()
    return Response(status_code=204)
