import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reservation_core import auth
from reservation_core.config import get_settings
from reservation_core.database import Base, engine, get_db
from reservation_core.dependencies import get_current_user
from reservation_core.errors import InfraError, PermissionDeniedError, ValidationError, install_error_handlers
from reservation_core.logging_middleware import add_audit_middleware
from reservation_core.models import RoleEnum, User
from reservation_core.rate_limit import apply_rate_limiter, limiter
from reservation_core.schemas import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse, UserRead

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Users Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    install_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "users")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "users"}


@app.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register_user(request: Request, user_in: RegisterRequest, db: Session = Depends(get_db)) -> RegisterResponse:
    email = user_in.email.lower()
    if not auth.email_allowed(email):
        raise ValidationError(f"Only {settings.allowed_email_domain} emails are allowed")
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("Email already exists")

    admins_exist = db.query(User).filter(User.role == RoleEnum.ADMIN).first() is not None
    if user_in.role != RoleEnum.USER and admins_exist:
        raise PermissionDeniedError("Only admins can assign elevated roles")

    user = User(
        full_name=user_in.full_name.strip(),
        email=email,
        role=user_in.role,
        hashed_password=auth.get_password_hash(user_in.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("Email already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Registering %s failed", email)
        raise InfraError() from exc
    db.refresh(user)
    logger.info("Registered user %s with role %s", user.user_id, user.role.value)
    return RegisterResponse(message="User registered successfully", user_id=user.user_id)


@app.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(request: Request, credentials: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    if not credentials.email or not credentials.password:
        raise ValidationError("Email and password required")
    user = auth.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise ValidationError("Invalid email or password")

    access_token = auth.create_access_token({"sub": user.email, "role": user.role.value})
    return LoginResponse(
        access_token=access_token,
        user_id=user.user_id,
        full_name=user.full_name,
        role=user.role,
    )


@app.get("/me", response_model=UserRead)
@limiter.limit("30/minute")
def read_me(request: Request, current_user: User = Depends(get_current_user)) -> User:
    return current_user
