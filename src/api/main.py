from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.chat import router as chat_router
from src.api.routes.transcripts import router as transcripts_router

app = FastAPI(
    title="Item Chat API",
    description="Context-aware chat over saved items, with transcript acquisition",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)
app.include_router(transcripts_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
