from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from database import Base, engine, settings
from api import rooms, players


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 設定 logging 並建立資料庫表
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Tic-Tac-Toe Rooms API",
    description="Room synchronization for two-player tic-tac-toe over a shared document store",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rooms.router)
app.include_router(players.router)


@app.get("/")
def root():
    return {"message": "Tic-Tac-Toe Rooms API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
