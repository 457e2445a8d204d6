"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Provider keys and model selection are read once at import; the
agent core only ever sees an LLM client built from these values.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Upload storage (relative to project root unless UPLOAD_DIR is absolute)
UPLOAD_DIR_NAME: str = os.getenv("UPLOAD_DIR", "data/uploads").strip() or "data/uploads"

# Largest accepted upload (bytes)
MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

# Agent graph
PLAN_COMPLETE: str = "PLAN_COMPLETE"
GRAPH_RECURSION_LIMIT: int = 50

# LLM provider: "openai", "gemini", "huggingface", or empty for auto-selection
# (OpenAI if OPENAI_API_KEY is set, else Gemini if GOOGLE_API_KEY is set, else Hugging Face).
LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "").strip().lower()
LLM_MAX_TOKENS: int = 1024
LLM_TEMPERATURE: float = 0.0

# API timeouts (seconds)
LLM_API_TIMEOUT: float = 60.0
TOOLS_HTTP_TIMEOUT: float = 15.0

# OpenAI
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Google Gemini (REST generateContent)
GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "").strip()
GEMINI_LLM_MODEL: str = (
    os.getenv("GEMINI_LLM_MODEL", "gemini-1.5-flash-latest").strip() or "gemini-1.5-flash-latest"
)
GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"

# Hugging Face router chat completions
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"

# Tool credentials
TAVILY_API_KEY: str = os.getenv("TAVILY_API_KEY", "").strip()
GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "").strip()

# Tool endpoints
TAVILY_SEARCH_URL: str = "https://api.tavily.com/search"
OPEN_METEO_FORECAST: str = "https://api.open-meteo.com/v1/forecast"
GITHUB_SEARCH_URL: str = "https://api.github.com/search/repositories"
WIKIPEDIA_SUMMARY_URL: str = "https://en.wikipedia.org/api/rest_v1/page/summary/"
ARXIV_QUERY_URL: str = "http://export.arxiv.org/api/query"

# Tool result limits
WEB_SEARCH_MAX_RESULTS: int = 3
GITHUB_MAX_RESULTS: int = 5
ARXIV_MAX_RESULTS: int = 3
FILE_ANALYST_MAX_CHARS: int = 20000

# Chat UI
API_BASE: str = os.getenv("API_BASE", "http://localhost:8000").strip() or "http://localhost:8000"
