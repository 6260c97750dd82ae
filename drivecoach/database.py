"""
Database operations for DriveCoach.
Supabase CRUD for assessments, students and organizations.
"""
import logging
from typing import Dict, List, Optional
from uuid import UUID

from supabase import Client

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A write to the remote store failed; the caller keeps its draft and may retry."""


class AssessmentStore:
    """Wrapper around an injected Supabase client with assessment-specific operations."""

    def __init__(self, client: Client):
        self.client = client

    # ============= Assessments =============

    def list_assessments(self, student_id: Optional[UUID | str] = None, limit: Optional[int] = None) -> List[Dict]:
        """Assessments newest first, optionally for one student."""
        try:
            query = (
                self.client.table("assessments")
                .select("*")
                .order("assessment_date", desc=True)
                .order("created_at", desc=True)
            )
            if student_id:
                query = query.eq("student_id", str(student_id))
            if limit:
                query = query.limit(limit)
            response = query.execute()
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error fetching assessments: {e}")
            return []

    def get_assessment(self, assessment_id: UUID | str) -> Optional[Dict]:
        try:
            response = self.client.table("assessments").select("*").eq("id", str(assessment_id)).single().execute()
            return response.data
        except Exception as e:
            logger.error(f"Error fetching assessment {assessment_id}: {e}")
            return None

    def create_assessment(self, row: Dict) -> Dict:
        """
        Insert one assessment row.

        Args:
            row: organization_id, student_id, instructor_id, assessment_type,
                 assessment_date (ISO), total_score, form_data

        Returns:
            The inserted row as stored

        Raises:
            StoreError: insert failed or returned nothing
        """
        try:
            response = self.client.table("assessments").insert(row).execute()
        except Exception as e:
            logger.error(f"Error creating assessment: {e}")
            raise StoreError(str(e)) from e
        if not response.data:
            raise StoreError("Assessment insert returned no row")
        created = response.data[0]
        logger.info(f"Assessment {created.get('id')} saved ({row.get('assessment_type')})")
        return created

    def update_assessment(self, assessment_id: UUID | str, changes: Dict) -> Dict:
        try:
            response = self.client.table("assessments").update(changes).eq("id", str(assessment_id)).execute()
        except Exception as e:
            logger.error(f"Error updating assessment {assessment_id}: {e}")
            raise StoreError(str(e)) from e
        if not response.data:
            raise StoreError(f"Assessment {assessment_id} not found")
        return response.data[0]

    # ============= Students / organization =============

    def list_students(self, archived: bool = False) -> List[Dict]:
        try:
            response = (
                self.client.table("students")
                .select("*")
                .eq("is_archived", archived)
                .order("last_name")
                .order("first_name")
                .execute()
            )
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error fetching students: {e}")
            return []

    def get_organization(self, organization_id: UUID | str) -> Optional[Dict]:
        try:
            response = (
                self.client.table("organizations")
                .select("*")
                .eq("id", str(organization_id))
                .single()
                .execute()
            )
            return response.data
        except Exception as e:
            logger.error(f"Error fetching organization {organization_id}: {e}")
            return None
