from bizops.models.activity import ActivityLog
from bizops.models.ads import AdCampaign
from bizops.models.backup import Backup
from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin
from bizops.models.customer import Customer, FinanceTransaction
from bizops.models.expense import Expense
from bizops.models.lead import Lead
from bizops.models.payroll import PayrollEntry
from bizops.models.report import SmartGoal, TeamSummary, WorkReport
from bizops.models.settings import SystemSettings
from bizops.models.task import WorkTask
from bizops.models.training import ResourceNode, TrainingEvent, TrainingTemplate
from bizops.models.user import User

__all__ = [
    "Base",
    "UUIDPrimaryKeyMixin",
    "AuditMixin",
    "ActivityLog",
    "AdCampaign",
    "Backup",
    "Customer",
    "Expense",
    "FinanceTransaction",
    "Lead",
    "PayrollEntry",
    "ResourceNode",
    "SmartGoal",
    "SystemSettings",
    "TeamSummary",
    "TrainingEvent",
    "TrainingTemplate",
    "User",
    "WorkReport",
    "WorkTask",
]
