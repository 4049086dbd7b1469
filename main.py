# src/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from auth.routes import router as auth_router
from subscribers.routes import router as subscribers_router
from plans.routes import router as plans_router
from subscription.routes import router as subscription_router
from dashboard.routes import router as dashboard_router
from activity.routes import router as activity_router
from scheduler.tasks import start_scheduler, expire_due_subscriptions
from config import settings

app = FastAPI(
    title="Subscription Billing Backend",
    description="Multi-tenant API for subscribers, plans and recurring subscriptions",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(subscribers_router)
app.include_router(plans_router)
app.include_router(subscription_router)
app.include_router(dashboard_router)
app.include_router(activity_router)

@app.on_event("startup")
async def startup_event():
    """Run initial tasks on startup."""
    if settings.ENABLE_SCHEDULER and not settings.DEMO_MODE:
        expire_due_subscriptions()
        start_scheduler()

@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Welcome to Subscription Billing Backend!"}
