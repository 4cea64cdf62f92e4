"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from projexa.api.routes.auth_routes import router as auth_router
from projexa.api.routes.user_routes import router as user_router
from projexa.api.routes.admin_project_routes import router as admin_project_router
from projexa.api.routes.phase_routes import router as phase_router
from projexa.api.routes.check_routes import router as check_router
from projexa.api.routes.submission_routes import router as submission_router, files_router
from projexa.api.routes.student_routes import router as student_router
from projexa.api.routes.guide_routes import router as guide_router
from projexa.api.routes.leaderboard_routes import router as leaderboard_router
from projexa.api.routes.notification_routes import router as notification_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(admin_project_router)
api_router.include_router(phase_router)
api_router.include_router(check_router)
api_router.include_router(submission_router)
api_router.include_router(files_router)
api_router.include_router(student_router)
api_router.include_router(guide_router)
api_router.include_router(leaderboard_router)
api_router.include_router(notification_router)
