# ecotrack/main.py
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time

from . import config, crud, models, schemas
from .database import Base, SessionLocal, engine, get_db
from .errors import EcoTrackError, InvalidInput, NotFound, Unauthenticated
from .ledger import Ledger
from .rates import compute_points, parse_amount
from .security import create_access_token, decode_access_token

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("ecotrack.api")

SENSITIVE_HEADERS = {"authorization", "cookie"}
MAX_ID = 2**63 - 1


def init_db():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        crud.seed_rewards(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="EcoTrack Rewards API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def _mask_headers(headers):
    return {k: ("***masked***" if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    log.info({
        "method": request.method,
        "path": request.url.path,
        "status_code": response.status_code,
        "duration_ms": int((time.time() - start) * 1000),
        "headers": _mask_headers(dict(request.headers)),
    })
    return response


# -----------------
# Error rendering
# -----------------
@app.exception_handler(EcoTrackError)
async def ecotrack_error_handler(request: Request, exc: EcoTrackError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = first.get("msg", "Invalid input")
    message = f"{field}: {detail}" if field else detail
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    log.error("storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Internal server error."})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Internal server error."})


# -----------------
# Auth dependency
# -----------------
bearer = HTTPBearer(auto_error=False)


def require_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated()
    email = decode_access_token(credentials.credentials)
    user = crud.get_user_by_email(db, email)
    if not user:
        log.warning("token subject %s does not exist", email)
        raise Unauthenticated("User not found.")
    return user


def get_ledger(db: Session = Depends(get_db)) -> Ledger:
    return Ledger(db)


def _iso(dt):
    return dt.isoformat() if dt else None


def _waste_out(e):
    return {
        "id": e.id,
        "wasteType": e.waste_type,
        "wasteAmount": e.waste_amount,
        "pointsEarned": e.points_earned,
        "createdAt": _iso(e.created_at),
    }


def _reward_out(r):
    return {
        "id": r.id,
        "name": r.name,
        "description": r.description,
        "pointsRequired": r.points_required,
        "available": r.available,
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "ecotrack"}


# -----------------
# Users
# -----------------
@app.post("/api/users/register", response_model=schemas.TokenOut, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.RegisterIn, db: Session = Depends(get_db)):
    user = crud.create_user(db, payload.email, payload.password)
    return {"token": create_access_token(user.email), "email": user.email}


@app.post("/api/users/login", response_model=schemas.TokenOut)
def login(payload: schemas.LoginIn, db: Session = Depends(get_db)):
    user = crud.authenticate_user(db, payload.email, payload.password)
    return {"token": create_access_token(user.email), "email": user.email}


@app.get("/api/users/me")
def me(user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    return {"email": user.email, "points": ledger.get_balance(user.email)}


# -----------------
# Waste
# -----------------
@app.post("/api/waste")
def add_waste_entry(payload: schemas.WasteIn, user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    if not payload.waste_type or payload.waste_amount is None:
        raise InvalidInput("Valid waste type and amount are required.")
    amount = parse_amount(payload.waste_amount)
    points = compute_points(payload.waste_type, amount)
    entry = ledger.credit(user.email, payload.waste_type, amount, points)
    return {
        "message": "Waste entry added successfully and points updated.",
        "pointsEarned": entry.points_earned,
        "totalPoints": ledger.get_balance(user.email),
    }


@app.get("/api/waste")
def list_waste_entries(user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    rows = ledger.history(user.email)
    if not rows:
        raise NotFound("No waste entries found for this user.")
    return [_waste_out(r) for r in rows]


# -----------------
# Rewards
# -----------------
@app.get("/api/rewards/points")
def get_points(user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    return {"points": ledger.get_balance(user.email)}


@app.get("/api/rewards/gifts")
def get_gifts(user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    rewards = ledger.list_rewards()
    if not rewards:
        raise NotFound("No rewards available.")
    return [_reward_out(r) for r in rewards]


@app.post("/api/rewards/redeem/{reward_id}")
def redeem_reward(reward_id: int = Path(..., ge=1, le=MAX_ID), user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    ledger.debit(user.email, reward_id)
    return {"message": "Reward redeemed successfully.", "totalPoints": ledger.get_balance(user.email)}


@app.get("/api/rewards/redemptions")
def list_redemptions(user: models.User = Depends(require_user), ledger: Ledger = Depends(get_ledger)):
    out = []
    for r in ledger.redemptions(user.email):
        out.append({
            "id": r.id,
            "rewardId": r.reward_id,
            "rewardName": r.reward.name if r.reward else None,
            "pointsSpent": r.points_spent,
            "createdAt": _iso(r.created_at),
        })
    return out


# -----------------
# Shipping
# -----------------
@app.post("/api/shipping", status_code=status.HTTP_201_CREATED)
def add_shipping(payload: schemas.ShippingIn, user: models.User = Depends(require_user), db: Session = Depends(get_db)):
    addr = crud.create_shipping_address(
        db, user.email, payload.first_name, payload.last_name,
        payload.address, payload.city, payload.state, payload.zip,
    )
    return {"message": "Shipping address added successfully.", "id": addr.id}


@app.get("/api/shipping")
def list_shipping(user: models.User = Depends(require_user), db: Session = Depends(get_db)):
    return [
        {
            "id": a.id,
            "firstName": a.first_name,
            "lastName": a.last_name,
            "address": a.address,
            "city": a.city,
            "state": a.state,
            "zip": a.zip,
            "createdAt": _iso(a.created_at),
        }
        for a in crud.get_shipping_addresses(db, user.email)
    ]


# -----------------
# Education
# -----------------
@app.get("/api/education")
def education():
    return {"message": "Education routes working!", "content": crud.EDUCATION_CONTENT}
