# ============================================================
# SaveTheBus FastAPI App
# ------------------------------------------------------------
# This app wires everything together:
#   - Objection letter generation with template fallback
#   - Bilingual template browsing for "write my own" mode
#   - The OpenRouter proxy gateway under /api/proxy
#   - Support for Gemini (direct) or OpenRouter (via proxy)
# ============================================================

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

# --- Local imports ---
from src.settings import settings
from src.log import setup_logging
from src.generate import (
    ErrorKind,
    GenerationError,
    GenerationMode,
    Language,
    ModelParams,
    ObjectionGenerator,
    ObjectionRequest,
    ObjectionTone,
    Provider,
)
from src.generate.models import OPENROUTER_MODELS, get_model, recommended_model
from src.generate.templates import get_template, list_topics
from src.proxy import router as proxy_router, cors_middleware

logger = setup_logging(settings.LOG_LEVEL)

# ------------------------------------------------------------
# 🔧 Model client selection
# ------------------------------------------------------------
provider_config = settings.provider_config()
objection_gen = ObjectionGenerator(config=provider_config)
logger.info(
    "Letter generation via %s (model=%s, streaming=%s)",
    provider_config.provider.value, provider_config.model, provider_config.streaming,
)


def get_generator() -> ObjectionGenerator:
    return objection_gen

# ------------------------------------------------------------
# 🚀 FastAPI init
# ------------------------------------------------------------
app = FastAPI(title="SaveTheBus API", version="1.0")
app.middleware("http")(cors_middleware)
app.include_router(proxy_router)

# ------------------------------------------------------------
# 📦 Pydantic models
# ------------------------------------------------------------
class ObjectionPayload(BaseModel):
    name: str
    location: str
    tone: ObjectionTone = ObjectionTone.FIRM
    concerns: List[str] = Field(default_factory=list)
    language: Language = Language.EN
    mode: GenerationMode = GenerationMode.AUTO
    custom_text: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def to_request(self) -> ObjectionRequest:
        return ObjectionRequest(
            name=self.name.strip(),
            location=self.location.strip(),
            tone=self.tone,
            concerns=list(self.concerns),
            language=self.language,
            mode=self.mode,
            custom_text=self.custom_text,
        )

class LetterPayload(BaseModel):
    subject: str
    body: str
    is_optimized: bool
    provider: str

class TemplatePayload(BaseModel):
    language: str
    topic: str
    subject: str
    body: str

# ------------------------------------------------------------
# ✉️ Letter generation
# ------------------------------------------------------------
@app.post("/api/objection", response_model=LetterPayload)
def generate_objection(req: ObjectionPayload, gen: ObjectionGenerator = Depends(get_generator)):
    params = ModelParams(temperature=req.temperature, max_tokens=req.max_tokens)
    try:
        letter = gen.generate_objection_email(req.to_request(), params)
    except GenerationError as e:
        if e.kind is ErrorKind.VALIDATION:
            raise HTTPException(status_code=400, detail=e.message)
        raise
    return LetterPayload(
        subject=letter.subject,
        body=letter.body,
        is_optimized=letter.is_optimized,
        provider=letter.provider.value,
    )

# ------------------------------------------------------------
# 📄 Templates
# ------------------------------------------------------------
@app.get("/api/templates/{language}")
def templates_for_language(language: Language):
    return {"language": language.value, "topics": list_topics(language)}

@app.get("/api/templates/{language}/{topic}", response_model=TemplatePayload)
def template_detail(language: Language, topic: str):
    try:
        t = get_template(language, topic)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    return TemplatePayload(language=language.value, topic=topic, subject=t.subject, body=t.body)

# ------------------------------------------------------------
# 🤖 Providers & models
# ------------------------------------------------------------
@app.get("/api/models")
def list_models():
    return {
        "active": {"provider": provider_config.provider.value, "model": provider_config.model},
        "recommended": {p.value: recommended_model(p) for p in (Provider.GEMINI, Provider.OPENROUTER)},
        "openrouter": [m.to_dict() for m in OPENROUTER_MODELS],
    }

# ids look like "vendor/name:tier", hence the path converter
@app.get("/api/models/{model_id:path}")
def model_detail(model_id: str):
    info = get_model(model_id)
    if info is None:
        raise HTTPException(status_code=404, detail=f"unknown OpenRouter model: {model_id}")
    return info.to_dict()

@app.get("/api/provider/status")
def provider_status(gen: ObjectionGenerator = Depends(get_generator)) -> Dict[str, Any]:
    check = getattr(gen.model_client, "check_connection", None)
    if check is None:
        return {
            "provider": gen.config.provider.value,
            "success": False,
            "message": f"Connection check not available for {gen.config.provider.value}",
        }
    return {"provider": gen.config.provider.value, **check()}

# ------------------------------------------------------------
# 🧭 Health checks
# ------------------------------------------------------------
@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "env": settings.ENV,
        "debug": settings.DEBUG,
        "app": settings.app_name,
        "provider": provider_config.provider.value,
    }

@app.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV}

@app.get("/")
def hello():
    return {"message": "SaveTheBus objection service running."}
