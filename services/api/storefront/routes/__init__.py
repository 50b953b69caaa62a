"""API routes."""

from fastapi import APIRouter

from storefront.routes import products, seasons

api_router = APIRouter()

# Storefront catalogue
api_router.include_router(products.router, prefix="/api/products", tags=["products"])

# Season bootstrap (theme colours, name)
api_router.include_router(seasons.router, prefix="/api/seasons", tags=["seasons"])
