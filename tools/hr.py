"""PeopleStrong HR integration tools.

Each tool fetches a fresh apiKey/accessToken pair for its route and then
posts a dynamic-filter query to the matching outbound integration.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Type

from pydantic import BaseModel

from api.credentials import CredentialBroker
from api.external_client import ExternalClient
from config.settings import IntegrationsConfig
from errors import CredentialError
from models import ToolOutcome
from schema import HRDetailArgs, HRFilterArgs

ROUTE_PREFIX = "/api/integration/Outbound/PeopleStrongHRServices"

logger = logging.getLogger("app")


@dataclass(frozen=True)
class Integration:
    tool_name: str
    master_name: str
    sys_module_name: str = "HRIS"
    description: str = ""
    schema: Type[BaseModel] = HRFilterArgs

    @property
    def route_path(self) -> str:
        return f"{ROUTE_PREFIX}_{self.sys_module_name}_{self.master_name}"


INTEGRATIONS = (
    Integration("getEmployeeDetails", "testAgent",
                description="Employee master details filtered by field codes and optional date ranges.",
                schema=HRDetailArgs),
    Integration("getEmployeeBankDocumentDetails", "testAgent1",
                description="Employee bank document details."),
    Integration("getEmployeeConfirmationDocumentDetails", "confirmationAgentTool",
                description="Employee confirmation document details."),
    Integration("getEmployeeExitDocumentDetails", "exitDocumentDetails",
                description="Employee exit document details."),
    Integration("getEmployeePromotionDocumentDetails", "promotionAgentTool",
                description="Employee promotion document details."),
    Integration("getEmployeeIDDocumentDetails", "IdDocumentDetails",
                description="Employee identity document details."),
    Integration("getEmployeeContactDetails", "contactAgentTool",
                description="Employee contact details."),
    Integration("getEmployeeDependentDetails", "dependentAgenttool",
                description="Employee dependent details."),
    Integration("getEmployeeEmergencyContactDetails", "emergencyAgentTool",
                description="Employee emergency contact details."),
    Integration("getEmployeeSkillDetails", "skillAgentTool",
                description="Employee skill details."),
    Integration("getEmployeeTransferDetails", "transferAgentTool",
                description="Employee transfer details."),
    Integration("getCandidateDetails", "candidateDetailsTool", sys_module_name="Recruit",
                description="Recruitment candidate details."),
)

_FIELD_PREFIXES = (
    (("offer",), "Offered Date"),
    (("birth", "dob"), "Birth Date"),
    (("join",), "Date Of Joining"),
    (("confirmation",), "Confirmation Date"),
    (("relieving",), "Date Of Relieving"),
    (("retirement",), "Retirement Date"),
    (("l1",), "L1ManagerName"),
    (("l2",), "L2ManagerName"),
)


def normalize_field_code(field_code: str) -> str:
    """Map loose field names ("dob", "joining date") to canonical API field codes."""
    code = re.sub(r"\s+", "", field_code.lower())
    for prefixes, canonical in _FIELD_PREFIXES:
        if code.startswith(prefixes):
            return canonical
    return field_code


def build_payload(integration: Integration, args: BaseModel) -> Dict[str, Any]:
    filters = [
        {**f.model_dump(), "fieldCode": normalize_field_code(f.fieldCode)}
        for f in (getattr(args, "dynamicFilter", None) or [])
    ]
    payload: Dict[str, Any] = {
        "integrationMasterName": integration.master_name,
        "dynamicFilter": filters,
    }
    for key in ("startDate", "endDate"):
        date_range = getattr(args, key, None)
        if date_range is not None and date_range.value:
            payload[key] = date_range.model_dump()
    return payload


def make_hr_handler(
    integration: Integration,
    client: ExternalClient,
    broker: CredentialBroker,
    cfg: IntegrationsConfig,
):
    url = f"{cfg.base_url.rstrip('/')}{integration.route_path}"

    async def handler(args: BaseModel) -> ToolOutcome:
        try:
            credential = await broker.fetch_credential(
                sys_module_name=integration.sys_module_name,
                route_path=integration.route_path,
            )
        except CredentialError as e:
            logger.warning(f"{integration.tool_name}: {e.message}")
            return ToolOutcome.failure(f"{integration.tool_name} failed: {e.message}")
        outcome = await client.post(url, build_payload(integration, args), credential, timeout=cfg.timeout_seconds)
        if not outcome.ok:
            return ToolOutcome.failure(f"{integration.tool_name} failed: {outcome.error}")
        return outcome

    return handler
