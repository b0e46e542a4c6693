"""
clinicdesk Web Server

FastAPI-based API for the clinicdesk admin console and user portal.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, EmailStr, Field

from clinicdesk import __version__
from clinicdesk.auth import AuthenticatedUser, PortalDenied, PortalSession, SessionStorage, get_current_user
from clinicdesk.auth.portal import DASHBOARD_PATH, SESSION_KEY
from clinicdesk.config import configure_logging
from clinicdesk.context import AppContext, get_context
from clinicdesk.db.client import StoreError
from clinicdesk.errors import ImageUploadError, NotFoundError, ValidationError
from clinicdesk.exporters import CSV_MEDIA_TYPE, export_csv, export_filename
from clinicdesk.models import Account, Document
from clinicdesk.services import (
    ClinicForm,
    approved_user_options,
    assign_document,
    bulk_transition,
    compute_stats,
    create_account,
    delete_image,
    documents_for_email,
    save_clinic,
    upload_image,
)
from clinicdesk.services.images import MAX_IMAGE_BYTES
from clinicdesk.services.stats import display_name_for, formatted_date, greeting_for


logger = logging.getLogger("clinicdesk.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield
    ctx = getattr(app.state, "context", None)
    if ctx is not None:
        ctx.close()
        app.state.context = None


# Create FastAPI app
app = FastAPI(
    title="clinicdesk",
    description="clinicdesk - admin console and user portal API",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def store_failure(message: str, error: Exception) -> HTTPException:
    """Log a store error and turn it into a generic 500."""
    logger.error("%s: %s", message, error, exc_info=error)
    return HTTPException(status_code=500, detail=message)


def header_filename(name: str) -> str:
    """Drop CR, LF and other control characters so the name cannot break the header."""
    return "".join(ch for ch in name if ch.isprintable())


def csv_download(document: Document) -> Response:
    filename = header_filename(export_filename(document))
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    return Response(
        content=export_csv(document),
        media_type=CSV_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}",
        },
    )


def require_confirmation(confirm: bool) -> None:
    if not confirm:
        raise HTTPException(status_code=400, detail="Deletion must be confirmed")


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================

class SignUpRequest(BaseModel):
    """Request model for admin signup."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    display_name: Optional[str] = None


class LoginRequest(BaseModel):
    """Request model for admin login."""
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Response model for auth endpoints."""
    access_token: str
    refresh_token: str
    user: dict


class AdminProfile(BaseModel):
    """Response model for the current admin."""
    id: str
    email: str
    display_name: Optional[str] = None


@app.post("/api/auth/signup", response_model=AuthResponse)
async def signup(request: SignUpRequest, ctx: AppContext = Depends(get_context)):
    """
    Create a new admin.

    Returns access token and profile on success.
    """
    try:
        auth_response = ctx.auth_client.sign_up(request.email, request.password, request.display_name)

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=400, detail="Signup failed")

        return AuthResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
            user={
                "id": str(auth_response.user.id),
                "email": request.email,
                "display_name": request.display_name,
            }
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.warning("Signup failed for %s: %s", request.email, e)
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/auth/login", response_model=AuthResponse)
async def login(request: LoginRequest, ctx: AppContext = Depends(get_context)):
    """
    Log in an existing admin.

    Returns access token and profile on success.
    """
    try:
        auth_response = ctx.auth_client.sign_in(request.email, request.password)

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        metadata = getattr(auth_response.user, "user_metadata", None) or {}
        return AuthResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
            user={
                "id": str(auth_response.user.id),
                "email": request.email,
                "display_name": metadata.get("display_name"),
            }
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.info("Login failed for %s: %s", request.email, e)
        raise HTTPException(status_code=401, detail=str(e))


@app.post("/api/auth/logout")
async def logout(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Log out the current admin."""
    try:
        ctx.auth_client.sign_out()
        return {"status": "logged_out"}
    except Exception as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/auth/me", response_model=AdminProfile)
async def get_me(user: AuthenticatedUser = Depends(get_current_user)):
    """Get the current admin."""
    return AdminProfile(id=user.id, email=user.email, display_name=user.display_name)


# =============================================================================
# DASHBOARD ENDPOINTS
# =============================================================================

@app.get("/api/dashboard")
async def get_dashboard(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Greeting, date, quote and the admin's record counts."""
    now = datetime.now()
    greeting = greeting_for(now)

    try:
        stats = compute_stats(ctx.accounts, ctx.documents, user.email)
    except StoreError as e:
        raise store_failure("Failed to load statistics.", e)

    return {
        "greeting": f"{greeting['emoji']} {greeting['text']}, {display_name_for(user.display_name, user.email)}!",
        "date": f"📅 {formatted_date(now)}",
        "quote": ctx.quotes.fetch(),
        "stats": stats.to_dict(),
    }


@app.get("/api/dashboard/stats")
async def get_dashboard_stats(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Counts scoped to the current admin's records."""
    try:
        return compute_stats(ctx.accounts, ctx.documents, user.email).to_dict()
    except StoreError as e:
        raise store_failure("Failed to load statistics.", e)


# =============================================================================
# ACCOUNT ENDPOINTS
# =============================================================================

class CreateAccountRequest(BaseModel):
    """Request model for the add-user form."""
    username: str = ""
    email: str = ""
    role: str = ""
    status: str = ""


class BulkStatusRequest(BaseModel):
    """Request model for a bulk status change."""
    account_ids: list[str] = Field(default_factory=list)
    status: str = ""
    rejection_reason: Optional[str] = None


@app.get("/api/accounts")
async def list_accounts(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """List accounts created by the current admin."""
    try:
        accounts = ctx.accounts.list(user.email)
    except StoreError as e:
        raise store_failure("Failed to load users.", e)
    return {"accounts": [a.to_api() for a in accounts]}


@app.post("/api/accounts", status_code=201)
async def add_account(
    request: CreateAccountRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Create an account owned by the current admin."""
    try:
        account_id = create_account(
            ctx.accounts,
            user.email,
            username=request.username,
            email=request.email,
            role=request.role,
            status=request.status,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StoreError as e:
        raise store_failure("Failed to add user. Please try again.", e)
    return {"id": account_id, "message": "User added successfully!"}


@app.get("/api/accounts/approved")
async def list_approved_accounts(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Approved accounts of the current admin, as assignment options."""
    try:
        return {"options": approved_user_options(ctx.accounts, user.email)}
    except StoreError as e:
        raise store_failure("Failed to load approved users.", e)


@app.post("/api/accounts/bulk-status")
async def bulk_update_status(
    request: BulkStatusRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Apply one status to the selected accounts."""
    try:
        result = bulk_transition(
            ctx.accounts,
            request.account_ids,
            request.status,
            reason=request.rejection_reason,
            owner_email=user.email,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StoreError as e:
        raise store_failure("Failed to update users.", e)

    if not result.ok:
        raise HTTPException(status_code=500, detail={"message": "Failed to update users.", **result.to_dict()})
    return {"message": f"{result.succeeded} user(s) updated successfully!", **result.to_dict()}


# =============================================================================
# DOCUMENT ENDPOINTS
# =============================================================================

class CreateDocumentRequest(BaseModel):
    """Request model for creating a document."""
    document_name: str = ""
    user_ids: list[str] = Field(default_factory=list)


@app.get("/api/documents")
async def list_documents(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """List documents created by the current admin."""
    try:
        documents = ctx.documents.list(user.email)
    except StoreError as e:
        raise store_failure("Failed to load documents.", e)
    return {"documents": [d.to_api() for d in documents]}


@app.post("/api/documents", status_code=201)
async def create_document(
    request: CreateDocumentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Create a document assigned to approved accounts."""
    try:
        document_id = assign_document(
            ctx.documents,
            ctx.accounts,
            user.email,
            request.document_name,
            request.user_ids,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StoreError as e:
        raise store_failure("Failed to create document.", e)
    return {"id": document_id, "message": "Document created successfully!"}


def _owned_document(ctx: AppContext, document_id: str, owner_email: str) -> Document:
    try:
        document = ctx.documents.get_owned(document_id, owner_email)
    except StoreError as e:
        raise store_failure("Failed to load document.", e)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


@app.delete("/api/documents/{document_id}")
async def delete_document(
    document_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Delete a document owned by the current admin."""
    require_confirmation(confirm)
    _owned_document(ctx, document_id, user.email)
    try:
        ctx.documents.delete(document_id)
    except StoreError as e:
        raise store_failure("Failed to delete document.", e)
    return {"status": "deleted", "document_id": document_id}


@app.get("/api/documents/{document_id}/export")
async def export_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Download a document's assigned users as CSV."""
    return csv_download(_owned_document(ctx, document_id, user.email))


# =============================================================================
# CLINIC ENDPOINTS
# =============================================================================

@app.get("/api/clinics")
async def list_clinics(
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """List clinics created by the current admin."""
    try:
        clinics = ctx.clinics.list(user.email)
    except StoreError as e:
        raise store_failure("Failed to load clinics.", e)
    return {"clinics": [c.to_api() for c in clinics]}


@app.post("/api/clinics", status_code=201)
async def add_clinic(
    form: ClinicForm,
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Add a clinic."""
    try:
        clinic_id = save_clinic(ctx.clinics, user.email, form)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StoreError as e:
        raise store_failure("Failed to add clinic.", e)
    return {"id": clinic_id, "message": "Clinic added successfully!"}


@app.put("/api/clinics/{clinic_id}")
async def update_clinic(
    clinic_id: str,
    form: ClinicForm,
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Update a clinic owned by the current admin."""
    try:
        save_clinic(ctx.clinics, user.email, form, clinic_id=clinic_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Clinic not found")
    except StoreError as e:
        raise store_failure("Failed to update clinic.", e)
    return {"id": clinic_id, "message": "Clinic updated successfully!"}


@app.delete("/api/clinics/{clinic_id}")
async def delete_clinic(
    clinic_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    user: AuthenticatedUser = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Delete a clinic owned by the current admin."""
    require_confirmation(confirm)
    try:
        if ctx.clinics.get_owned(clinic_id, user.email) is None:
            raise HTTPException(status_code=404, detail="Clinic not found")
        ctx.clinics.delete(clinic_id)
    except HTTPException:
        raise
    except StoreError as e:
        raise store_failure("Failed to delete clinic.", e)
    return {"status": "deleted", "clinic_id": clinic_id}


# =============================================================================
# USER PORTAL ENDPOINTS
# =============================================================================

PORTAL_DENIAL_STATUS = {
    "missing": 400,
    "invalid": 400,
    "not_found": 401,
    "not_approved": 403,
}


class PortalLoginRequest(BaseModel):
    """Request model for portal login."""
    email: str = ""


def portal_session(email: Optional[str], ctx: AppContext) -> PortalSession:
    """Session whose storage holds the email the client sent, if any."""
    email = (email or "").strip()
    return PortalSession(SessionStorage({SESSION_KEY: email} if email else None), ctx.accounts)


def portal_denial(error: PortalDenied) -> HTTPException:
    return HTTPException(status_code=PORTAL_DENIAL_STATUS.get(error.reason, 400), detail=error.message)


async def get_portal_account(
    x_portal_email: Optional[str] = Header(None),
    ctx: AppContext = Depends(get_context),
) -> Account:
    """
    Resolve the portal session email to its approved account.

    The email is the whole session token. It is re-checked on every request,
    so an account that is not approved is refused here as it is at login.
    """
    session = portal_session(x_portal_email, ctx)
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Portal session required")
    try:
        return session.current_account()
    except PortalDenied as e:
        raise portal_denial(e)
    except StoreError as e:
        raise store_failure("Failed to load user data.", e)


@app.post("/api/portal/login")
async def portal_login(request: PortalLoginRequest, ctx: AppContext = Depends(get_context)):
    """Exchange an approved account's email for a portal session."""
    session = PortalSession(SessionStorage(), ctx.accounts)
    try:
        account = session.login(request.email)
    except PortalDenied as e:
        raise portal_denial(e)
    except StoreError as e:
        raise store_failure("Failed to access user portal", e)

    return {"email": account.email, "token": session.current_email, "redirect": DASHBOARD_PATH}


@app.post("/api/portal/logout")
async def portal_logout(
    x_portal_email: Optional[str] = Header(None),
    ctx: AppContext = Depends(get_context),
):
    """Nothing is held server-side; the client drops its stored email."""
    redirect = portal_session(x_portal_email, ctx).logout()
    return {"status": "logged_out", "redirect": redirect}


@app.get("/api/portal/me")
async def portal_me(account: Account = Depends(get_portal_account)):
    """The portal user's account, including images."""
    return account.to_api()


@app.get("/api/portal/documents")
async def portal_documents(
    account: Account = Depends(get_portal_account),
    ctx: AppContext = Depends(get_context),
):
    """Documents assigned to the portal user."""
    try:
        documents = documents_for_email(ctx.documents, account.email)
    except StoreError as e:
        raise store_failure("Failed to load documents.", e)
    return {"documents": [d.to_api() for d in documents]}


@app.get("/api/portal/documents/{document_id}/export")
async def portal_export_document(
    document_id: str,
    account: Account = Depends(get_portal_account),
    ctx: AppContext = Depends(get_context),
):
    """Download an assigned document's CSV."""
    try:
        document = ctx.documents.get(document_id)
    except StoreError as e:
        raise store_failure("Failed to load document.", e)
    if document is None or not document.is_assigned_to(account.email):
        raise HTTPException(status_code=404, detail="Document not found")
    return csv_download(document)


async def read_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded image without holding more than the size limit in memory.

    Anything over MAX_IMAGE_BYTES is refused before the body is read in full.
    """
    if file.size is not None and file.size > MAX_IMAGE_BYTES:
        raise ValidationError("Image size should not exceed 5MB.")
    data = await file.read(MAX_IMAGE_BYTES + 1)
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationError("Image size should not exceed 5MB.")
    return data


@app.post("/api/portal/images", status_code=201)
async def portal_upload_image(
    file: UploadFile = File(...),
    replace_image_id: Optional[str] = Form(None),
    account: Account = Depends(get_portal_account),
    ctx: AppContext = Depends(get_context),
):
    """Upload a profile image, or replace one with replace_image_id."""
    try:
        data = await read_upload(file)
        images = upload_image(
            ctx.accounts,
            ctx.image_host,
            account,
            data,
            file.filename or "image",
            file.content_type,
            replace_image_id=replace_image_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")
    except ImageUploadError as e:
        raise HTTPException(status_code=502, detail=e.message)
    except StoreError as e:
        raise store_failure("Failed to upload image.", e)

    message = "Image updated successfully!" if replace_image_id else "Image uploaded successfully!"
    return {"message": message, "images": [img.to_db() for img in images]}


@app.delete("/api/portal/images/{image_id}")
async def portal_delete_image(
    image_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    account: Account = Depends(get_portal_account),
    ctx: AppContext = Depends(get_context),
):
    """Remove a profile image from the portal user's account."""
    require_confirmation(confirm)
    try:
        images = delete_image(ctx.accounts, account, image_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")
    except StoreError as e:
        raise store_failure("Failed to delete image.", e)
    return {"message": "Image removed successfully!", "images": [img.to_db() for img in images]}


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
