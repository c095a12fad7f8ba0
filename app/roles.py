from enum import StrEnum


class Role(StrEnum):
    CORE_VOLUNTEER = "Core Volunteer"
    BOARD_MEMBER = "Board Member"
    COMMUNITY_ADVISORY_BOARD = "Community Advisory Board"
    LICENSED_MEDICAL_PROFESSIONAL = "Licensed Medical Professional"
    MEDICAL_ADMIN = "Medical Admin"
    TECH_TEAM = "Tech Team"
    DATA_ANALYST = "Data Analyst"
    DEVELOPMENT_COORDINATOR = "Development Coordinator"
    GRANT_WRITER = "Grant Writer"
    FUNDRAISING_VOLUNTEER = "Fundraising Volunteer"
    CONTENT_WRITER = "Newsletter & Content Writer"
    SOCIAL_MEDIA_TEAM = "Social Media Team"
    EVENTS_LEAD = "Events Lead"
    EVENTS_COORDINATOR = "Events Coordinator"
    PROGRAM_COORDINATOR = "Program Coordinator"
    OPERATIONS_COORDINATOR = "General Operations Coordinator"
    OUTREACH_LEAD = "Outreach & Engagement Lead"
    OUTREACH_VOLUNTEER = "Outreach Volunteer"
    VOLUNTEER_LEAD = "Volunteer Lead"
    STUDENT_INTERN = "Student Intern"
    SYSTEM_ADMINISTRATOR = "System Administrator"


GOVERNANCE_ROLES: frozenset[Role] = frozenset(
    {Role.BOARD_MEMBER, Role.COMMUNITY_ADVISORY_BOARD}
)

CLINICAL_ROLES: frozenset[Role] = frozenset(
    {Role.LICENSED_MEDICAL_PROFESSIONAL, Role.MEDICAL_ADMIN}
)

# roles that carry a Give-or-Get fundraising commitment
GIVE_OR_GET_ROLES: frozenset[Role] = frozenset({Role.BOARD_MEMBER})


def is_governance(role: Role | None) -> bool:
    return role in GOVERNANCE_ROLES


def is_clinical(role: Role | None) -> bool:
    return role in CLINICAL_ROLES
