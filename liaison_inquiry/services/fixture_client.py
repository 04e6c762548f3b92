"""Fixture-backed vendor client for development and tests"""
import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from liaison_inquiry.models.credentials import CredentialSet
from liaison_inquiry.models.forms import FormDefinition
from liaison_inquiry.models.submission import SubmissionResult
from liaison_inquiry.services.vendor_client import (
    API_URL,
    DEFAULT_FORM_NAME,
    VendorClient,
    decode_submit_response,
)

logger = logging.getLogger(__name__)

SAMPLE_DIR = Path(__file__).resolve().parents[1] / "sample"

OUTCOME_FIXTURES = {
    "success": "good_form",
    "failure": "bad_form",
    "duplicate": "duplicate_form",
}


class FixtureVendorClient(VendorClient):
    """Answers from the bundled sample JSON files, never touching the network"""

    def __init__(
        self,
        credentials: CredentialSet,
        outcome: str = "success",
        sample_dir: Path = SAMPLE_DIR,
        base_url: str = API_URL,
    ):
        super().__init__(credentials, base_url)
        if outcome not in OUTCOME_FIXTURES:
            raise ValueError(f"Unknown fixture outcome: {outcome}")
        self.outcome = outcome
        self.sample_dir = Path(sample_dir)
        self.submissions = []

    def load_mock(self, name: str):
        with open(self.sample_dir / f"{name}.json", "r", encoding="utf-8") as f:
            return json.load(f)

    async def list_forms(self) -> Dict[str, Optional[str]]:
        result: Dict[str, Optional[str]] = {DEFAULT_FORM_NAME: None}
        result.update(self.load_mock("submittable")["data"]["sem_forms"])
        return result

    async def get_requirements(self, form_id: Optional[str] = None) -> FormDefinition:
        return FormDefinition.model_validate(self.load_mock("requirements"))

    async def post_form(
        self,
        fields: Mapping[str, str],
        attempt: int = 0,
        referring_page: str = "",
    ) -> SubmissionResult:
        self.submissions.append(dict(fields))
        logger.info(f"Fixture submission ({self.outcome}) with {len(fields)} fields")
        return decode_submit_response(self.load_mock(OUTCOME_FIXTURES[self.outcome]))
