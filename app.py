import os, logging, uvicorn
from fastapi import FastAPI, Depends, HTTPException, Body, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session
from db import get_session, init_db
from models import User
from schemas import LoginIn, RegisterIn, TokenOut, PostOut, PageOut
from auth import hash_password, create_token, verify_credentials, get_current_user
import service
from service import PostError


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logger = logging.getLogger(__name__)


def setup_logging():
    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    if any(h.get_name() == "blog-api" for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.set_name("blog-api")
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(handler)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


setup_logging()
init_db()

app = FastAPI(title="Blog Posts API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS, allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"]
)


@app.exception_handler(PostError)
def post_error_handler(request, exc: PostError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ---------- Auth ----------
@app.post("/auth/register", response_model=TokenOut, status_code=201)
def register(data: RegisterIn, s: Session = Depends(get_session)):
    if s.scalar(select(User).where(User.username == data.username)):
        raise HTTPException(status_code=400, detail="Username already exists")
    user = User(username=data.username, password_hash=hash_password(data.password))
    s.add(user); s.commit()
    logger.info("Registered user %s", user.id)
    return {"token": create_token(s, user)}

@app.post("/auth/login", response_model=TokenOut)
def login(data: LoginIn, s: Session = Depends(get_session)):
    user = verify_credentials(s, data.username, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Bad credentials")
    return {"token": create_token(s, user)}


# ---------- CRUD ----------
@app.get("/posts", response_model=PageOut)
def list_posts(page: int = Query(1, ge=1), s: Session = Depends(get_session), _user: User = Depends(get_current_user)):
    result = service.list_posts(s, page)
    return PageOut(
        data=[PostOut.from_orm_post(p) for p in result.items],
        current_page=result.page, per_page=result.per_page,
        total=result.total, last_page=result.last_page
    )

@app.get("/posts/{post_id}", response_model=PostOut)
def get_post(post_id: int, s: Session = Depends(get_session), _user: User = Depends(get_current_user)):
    return PostOut.from_orm_post(service.get_post(s, post_id))

@app.post("/posts", response_model=PostOut, status_code=201)
def create_post(payload: dict = Body(...), s: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return PostOut.from_orm_post(service.create_post(s, user.id, payload))

@app.put("/posts/{post_id}", response_model=PostOut)
def update_post(post_id: int, payload: dict = Body(...), s: Session = Depends(get_session), user: User = Depends(get_current_user)):
    return PostOut.from_orm_post(service.update_post(s, user.id, post_id, payload))

@app.delete("/posts/{post_id}")
def delete_post(post_id: int, s: Session = Depends(get_session), user: User = Depends(get_current_user)):
    service.delete_post(s, user.id, post_id)
    return {"message": "Post deleted"}


if __name__ == "__main__":
    uvicorn.run("app:app", host="0.0.0.0", port=int(os.getenv("PORT", 8080)))
