"""Database models package."""
from database.models.agent import Agent, SelfEmployedStatus
from database.models.clinic import Clinic
from database.models.referral import Referral, ReferralStatus, OPEN_STATUSES
from database.models.app_setting import AppSetting

__all__ = [
    "Agent",
    "SelfEmployedStatus",
    "Clinic",
    "Referral",
    "ReferralStatus",
    "OPEN_STATUSES",
    "AppSetting",
]
