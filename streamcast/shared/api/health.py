from fastapi import APIRouter
from .utils import ApiSuccess


router = APIRouter()


@router.get('/health', response_model=ApiSuccess)
async def health():
    return ApiSuccess(results="OK")


@router.get('/', response_model=ApiSuccess)
async def root():
    return ApiSuccess(results="OK")
