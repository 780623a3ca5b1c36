"""Database repositories package."""
from database.repositories.agent import AgentRepository
from database.repositories.clinic import ClinicRepository
from database.repositories.referral import ReferralRepository
from database.repositories.app_setting import AppSettingRepository

__all__ = [
    "AgentRepository",
    "ClinicRepository",
    "ReferralRepository",
    "AppSettingRepository",
]
