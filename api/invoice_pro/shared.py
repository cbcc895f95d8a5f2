# api/invoice_pro/shared.py
from pathlib import Path

# FastAPI / Starlette bits you commonly use
from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
)

# Jinja2 for reminder email bodies
from jinja2 import Environment, FileSystemLoader, select_autoescape

# Pydantic
from pydantic import BaseModel, Field, EmailStr

# SQLAlchemy session type
from sqlalchemy.orm import Session

# Where email templates live
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Single Jinja2 environment used by the mailer
email_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)

# Re-export for convenience
__all__ = [
    "APIRouter",
    "Depends",
    "HTTPException",
    "Query",
    "BaseModel",
    "Field",
    "EmailStr",
    "Session",
    "email_templates",
]
