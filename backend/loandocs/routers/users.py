"""
Users Router - user records and loan access.

Session handling is out of scope; these routes are meant for an admin
console sitting behind the deployment's own authentication.
"""
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from .dependencies import get_user_service
from ..api.dto import LoanAccessUpdateDTO, UserCreateDTO
from ..api.mappers import UserMapper

router = APIRouter()


@router.post("/users")
async def create_user(payload: UserCreateDTO):
    """
    Create a user. Usernames are lower-cased and must be unique (409 otherwise).
    """
    user = await get_user_service().create_user(
        username=payload.username,
        password=payload.password,
        name=payload.name,
        role=payload.role,
        email=payload.email,
        phone=payload.phone,
        loan_access=payload.loan_access
    )
    return JSONResponse(status_code=201, content=UserMapper.to_dto(user).model_dump(by_alias=True))


@router.get("/users")
async def list_users(role: Optional[str] = None):
    users = await get_user_service().list_users(role=role)
    return [UserMapper.to_dto(user).model_dump(by_alias=True) for user in users]


@router.get("/users/{username}")
async def get_user(username: str):
    user = await get_user_service().get_user(username)
    return UserMapper.to_dto(user).model_dump(by_alias=True)


@router.delete("/users/{user_id}")
async def delete_user(user_id: str):
    """Delete a user by id. Documents they uploaded keep their reference."""
    await get_user_service().delete_user(user_id)
    return {"success": True, "id": user_id}


@router.put("/users/{username}/loan-access")
async def set_loan_access(username: str, payload: LoanAccessUpdateDTO):
    user = await get_user_service().set_loan_access(username, payload.loan_ids)
    return UserMapper.to_dto(user).model_dump(by_alias=True)


@router.get("/users/{username}/loan-access")
async def check_loan_access(username: str, loan_id: str = Query(..., alias="loanId")):
    allowed = await get_user_service().can_access_loan(username, loan_id)
    return {"username": username.lower(), "loanId": loan_id, "allowed": allowed}
