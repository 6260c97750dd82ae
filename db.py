"""Supabase client and app settings. Client is cached via Streamlit."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

from drivecoach.database import AssessmentStore
from drivecoach.drafts import DraftStore, DraftWriter
from drivecoach.report import Organization

load_dotenv()

DEFAULT_DRAFT_DIR = Path(__file__).resolve().parent / ".drafts"


@dataclass
class Settings:
    supabase_url: str
    supabase_key: str
    draft_dir: Path
    organization_id: Optional[str] = None
    organization_name: str = "Driving School"
    organization_logo_url: Optional[str] = None

    @property
    def organization(self) -> Organization:
        return Organization(name=self.organization_name, logo_url=self.organization_logo_url)


def load_settings() -> Settings:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return Settings(
        supabase_url=url,
        supabase_key=key,
        draft_dir=Path(os.environ.get("DRIVECOACH_DRAFT_DIR") or DEFAULT_DRAFT_DIR),
        organization_id=os.environ.get("DRIVECOACH_ORG_ID") or None,
        organization_name=os.environ.get("DRIVECOACH_ORG_NAME") or "Driving School",
        organization_logo_url=os.environ.get("DRIVECOACH_ORG_LOGO_URL") or None,
    )


def _env_client(settings: Settings) -> Client:
    return create_client(settings.supabase_url, settings.supabase_key)


@st.cache_resource
def get_settings() -> Settings:
    return load_settings()


@st.cache_resource
def get_store() -> AssessmentStore:
    return AssessmentStore(_env_client(get_settings()))


@st.cache_resource
def get_drafts() -> DraftStore:
    return DraftStore(get_settings().draft_dir)


def get_store_uncached(settings: Optional[Settings] = None) -> AssessmentStore:
    """For CLI/scripts (no Streamlit context)."""
    return AssessmentStore(_env_client(settings or load_settings()))


def get_draft_writer() -> DraftWriter:
    """One writer per browser session; the draft store behind it is shared."""
    if "draft_writer" not in st.session_state:
        st.session_state["draft_writer"] = DraftWriter(get_drafts())
    return st.session_state["draft_writer"]
