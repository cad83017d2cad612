"""V1 API router aggregating all sub-routers."""

from fastapi import APIRouter

from bizops.api.v1.ads.router import router as ads_router
from bizops.api.v1.auth.router import router as auth_router
from bizops.api.v1.crm.router import router as crm_router
from bizops.api.v1.dashboard.router import router as dashboard_router
from bizops.api.v1.expenses.router import router as expenses_router
from bizops.api.v1.leads.router import router as leads_router
from bizops.api.v1.payroll.router import router as payroll_router
from bizops.api.v1.settings.router import router as settings_router
from bizops.api.v1.system.router import router as system_router
from bizops.api.v1.tasks.router import router as tasks_router
from bizops.api.v1.training.router import router as training_router
from bizops.api.v1.users.router import router as users_router

v1_router = APIRouter()
v1_router.include_router(system_router, prefix="/system", tags=["system"])
v1_router.include_router(auth_router, prefix="/auth", tags=["auth"])
v1_router.include_router(users_router, prefix="/users", tags=["users"])
v1_router.include_router(settings_router, prefix="/settings", tags=["settings"])
v1_router.include_router(ads_router, prefix="/ads", tags=["ads"])
v1_router.include_router(crm_router, prefix="/crm", tags=["crm"])
v1_router.include_router(leads_router, prefix="/leads", tags=["leads"])
v1_router.include_router(expenses_router, prefix="/expenses", tags=["expenses"])
v1_router.include_router(payroll_router, prefix="/payroll", tags=["payroll"])
v1_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
v1_router.include_router(training_router, prefix="/training", tags=["training"])
v1_router.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
