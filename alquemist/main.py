from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from alquemist.core.auth import auth_backend, fastapi_users
from alquemist.core.config import settings
from alquemist.core.logging_config import configure_logging
from alquemist.db.database import create_db_and_tables
from alquemist.routers.activities import router as activities_router
from alquemist.routers.areas import router as areas_router
from alquemist.routers.companies import router as companies_router
from alquemist.routers.facilities import router as facilities_router
from alquemist.routers.inventory import router as inventory_router
from alquemist.routers.products import router as products_router
from alquemist.routers.recipes import router as recipes_router
from alquemist.routers.suppliers import router as suppliers_router
from alquemist.routers.templates import router as templates_router
from alquemist.schemas.users import UserCreate, UserRead, UserUpdate

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Alquemist API",
    description="Traceability API for cultivation facilities, inventory lots and recipes",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Tenancy and catalog
app.include_router(companies_router, prefix="/companies", tags=["companies"])
app.include_router(facilities_router, prefix="/facilities", tags=["facilities"])
app.include_router(areas_router, prefix="/areas", tags=["areas"])
app.include_router(products_router, prefix="/products", tags=["products"])
app.include_router(suppliers_router, prefix="/suppliers", tags=["suppliers"])

# Inventory, recipes and the activity log
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(recipes_router, prefix="/recipes", tags=["recipes"])
app.include_router(templates_router, prefix="/templates", tags=["templates"])
app.include_router(activities_router, prefix="/activities", tags=["activities"])

if __name__ == "__main__":
    uvicorn.run("alquemist.main:app", host="0.0.0.0", port=8000, reload=True)
