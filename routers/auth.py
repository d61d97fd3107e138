from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from pydantic import BaseModel
import hmac

from config import config

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])
security = HTTPBearer()

# ✅ Login Data Model
class LoginSchema(BaseModel):
    username: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
    role: str


# ===========================
#     HELPER FUNCTIONS
# ===========================

def _accounts():
    return {
        config.ADMIN_USERNAME: (config.ADMIN_PASSWORD, "admin"),
        config.STAFF_USERNAME: (config.STAFF_PASSWORD, "staff"),
    }


def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    token = credentials.credentials
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Session expired, please login again")

    username = payload.get("sub")
    role = payload.get("role")
    if username is None or role not in ("admin", "staff"):
        raise HTTPException(status_code=401, detail="Unauthorized role")

    return {"username": username, "role": role}


# ===========================
#        API ENDPOINTS
# ===========================

@router.post("/login", response_model=Token)
def process_login(data: LoginSchema):
    account = _accounts().get(data.username.strip())
    if not account or not hmac.compare_digest(account[0], data.password):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    role = account[1]
    access_token = create_access_token(data={"sub": data.username.strip(), "role": role})
    return {"access_token": access_token, "token_type": "bearer", "role": role}


@router.get("/me")
def who_am_i(user: dict = Depends(get_current_user)):
    return user
