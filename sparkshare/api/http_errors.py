from __future__ import annotations

from collections.abc import Mapping

from fastapi import HTTPException

# Codes raised as ValueError by the services, with their default status/detail.
KNOWN_CODES: dict[str, tuple[int, str]] = {
    "invalid_email": (400, "Invalid email address"),
    "cannot_invite_self": (400, "You cannot invite yourself"),
    "invitation_exists": (409, "You have already sent an invitation to this email"),
    "already_friends": (409, "You are already friends with this user"),
    "already_responded": (409, "This invitation has already been responded to"),
    "cannot_delete_accepted": (409, "Cannot delete accepted invitations"),
    "cannot_unfriend_self": (400, "You cannot unfriend yourself"),
    "invalid_share": (400, "spark_id, item_id and friend_id are required"),
    "invalid_item_data": (400, "Item data must be a JSON object"),
    "cannot_share_with_self": (400, "You cannot share with yourself"),
    "unknown_user": (404, "User not found"),
    "not_a_friend": (403, "You can only share with friends"),
    "already_resolved": (409, "This shared item has already been resolved"),
    "unknown_spark": (404, "Spark is not registered"),
}


def permission_error(exc: PermissionError) -> HTTPException:
    return HTTPException(status_code=403, detail=str(exc))


def value_error(
    exc: ValueError,
    *,
    code_statuses: Mapping[str, int] | None = None,
    detail_overrides: Mapping[str, str] | None = None,
    default_status: int = 400,
    default_detail: str | None = None,
) -> HTTPException:
    code = str(exc)

    if code_statuses and code in code_statuses:
        detail = detail_overrides[code] if detail_overrides and code in detail_overrides else code
        return HTTPException(status_code=code_statuses[code], detail=detail)

    if code in KNOWN_CODES:
        status, detail = KNOWN_CODES[code]
        if detail_overrides and code in detail_overrides:
            detail = detail_overrides[code]
        return HTTPException(status_code=status, detail=detail)

    return HTTPException(
        status_code=default_status,
        detail=default_detail if default_detail is not None else code,
    )
