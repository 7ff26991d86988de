"""Configuration management for the lead qualification assistant."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_BASE_URL = os.getenv("GROQ_BASE_URL") or None
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Storage backend: "supabase" or "memory"
STORE_BACKEND = os.getenv("STORE_BACKEND", "supabase")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

# CORS Configuration
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Generative backend
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama-3.3-70b-versatile")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "500"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))

# Recommendations: "catalog_order" or "keyword_match"
RECOMMENDATION_STRATEGY = os.getenv("RECOMMENDATION_STRATEGY", "catalog_order")
RECOMMENDATION_LIMIT = int(os.getenv("RECOMMENDATION_LIMIT", "3"))

# Engagement sampling
ENGAGEMENT_SAMPLE_INTERVAL_SECONDS = float(os.getenv("ENGAGEMENT_SAMPLE_INTERVAL_SECONDS", "3"))

# Lead materialization: "eager" or "lazy"
LEAD_POLICY = os.getenv("LEAD_POLICY", "eager")

# Logging Configuration
if LOG_FORMAT == "json":
    from logger import setup_logging
    setup_logging(LOG_LEVEL)
else:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
