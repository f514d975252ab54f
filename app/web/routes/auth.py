import hashlib
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.core.config import settings
from app.core.cookies import set_session_cookie
from app.core.rate_limit import signin_rate_limiter
from app.core.session import InvalidTransition, Session, get_session
from app.domain.users.schemas import Credentials, SessionOut
from app.domain.users.services import EmailAlreadyRegistered, IdentityProvider, InvalidCredentials
from app.web.dependencies import get_identity_provider

router = APIRouter()

logger = logging.getLogger(__name__)


def _session_out(session: Session, email: str | None = None) -> SessionOut:
    return SessionOut(
        mode=session.mode.value,
        user_id=session.principal_id,
        email=email,
        saves_results=session.can_persist,
    )


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=SessionOut)
async def sign_up(
    payload: Credentials,
    response: Response,
    session: Session = Depends(get_session),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Create an account and sign the caller in."""
    unsubscribe = identity.subscribe(session.on_identity_changed)
    try:
        user = await identity.sign_up(payload.email, payload.password)
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists.",
        )
    finally:
        unsubscribe()

    set_session_cookie(response, session.to_payload())
    return _session_out(session, user.email)


@router.post("/signin", response_model=SessionOut)
async def sign_in(
    request: Request,
    payload: Credentials,
    response: Response,
    session: Session = Depends(get_session),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Check credentials and move the session to authenticated."""
    client_host = request.client.host if request.client else "unknown"
    rate_key = f"{client_host}:{payload.email.lower()}"
    allowed = await signin_rate_limiter.is_allowed(
        rate_key,
        settings.SIGNIN_RATE_LIMIT_MAX,
        settings.SIGNIN_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        anonymised_key = hashlib.sha256(rate_key.encode()).hexdigest()[:12]
        logger.warning("Sign-in rate limit exceeded for identifier %s", anonymised_key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many sign-in attempts. Please try again later.",
        )

    unsubscribe = identity.subscribe(session.on_identity_changed)
    try:
        user = await identity.sign_in(payload.email, payload.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    finally:
        unsubscribe()

    set_session_cookie(response, session.to_payload())
    return _session_out(session, user.email)


@router.post("/guest", response_model=SessionOut)
async def enable_guest(
    response: Response,
    session: Session = Depends(get_session),
):
    """Use the app without an account. Results are generated but never saved."""
    try:
        session.enable_guest()
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    set_session_cookie(response, session.to_payload())
    return _session_out(session)


@router.post("/signout", response_model=SessionOut)
async def sign_out(
    response: Response,
    session: Session = Depends(get_session),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Return to anonymous; also leaves guest mode."""
    unsubscribe = identity.subscribe(session.on_identity_changed)
    try:
        identity.sign_out()
    finally:
        unsubscribe()

    set_session_cookie(response, session.to_payload())
    return _session_out(session)


@router.get("/session", response_model=SessionOut)
async def current_session(
    response: Response,
    session: Session = Depends(get_session),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Describe the caller's session and issue its cookie on first contact."""
    email = None
    if session.is_authenticated:
        user = await identity.get_user(session.principal_id)
        if user is None:
            # Account removed since the cookie was issued.
            session.sign_out()
        else:
            email = user.email
    set_session_cookie(response, session.to_payload())
    return _session_out(session, email)
