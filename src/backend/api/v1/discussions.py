"""
Discussion forum endpoints.

Reading is public; posting, commenting and reacting require sign-in.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.deps import get_current_user, get_discussion_service, get_language, get_profile_service
from core.exceptions import NotFoundError, PreconditionFailedError
from core.nagrik import Language
from models.cosmos_documents import ReactionKind, ReactionTarget, UserProfileDocument
from schemas.discussion import (
    Comment,
    CommentCreate,
    Post,
    PostCreate,
    ReactionRequest,
    ReactionResponse,
)
from services.discussion_service import DiscussionService
from services.profile_service import EngagementAction, ProfileService

router = APIRouter()


def _not_found(detail: str = "Post not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("", response_model=list[Post])
async def list_posts(
    language: Annotated[Language, Depends(get_language)],
    constituency_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    discussions: DiscussionService = Depends(get_discussion_service),
) -> list[Post]:
    """Published posts, newest first."""
    return await discussions.list_posts(
        constituency_id=constituency_id,
        limit=limit,
        offset=offset,
        language=language,
    )


@router.post("", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    language: Annotated[Language, Depends(get_language)],
    discussions: DiscussionService = Depends(get_discussion_service),
    profile_service: ProfileService = Depends(get_profile_service),
) -> Post:
    post = await discussions.create_post(
        current_user.id,
        body.title,
        body.content,
        constituency_id=body.constituency_id,
        language=language,
    )
    await profile_service.record_engagement(current_user.id, EngagementAction.POST)
    return post


@router.get("/{post_id}", response_model=Post)
async def get_post(
    post_id: str,
    language: Annotated[Language, Depends(get_language)],
    discussions: DiscussionService = Depends(get_discussion_service),
) -> Post:
    try:
        return await discussions.get_post(post_id, language)
    except NotFoundError:
        raise _not_found()


@router.get("/{post_id}/comments", response_model=list[Comment])
async def list_comments(
    post_id: str,
    language: Annotated[Language, Depends(get_language)],
    discussions: DiscussionService = Depends(get_discussion_service),
) -> list[Comment]:
    """Comments oldest first, each with its replies."""
    try:
        return await discussions.list_comments(post_id, language)
    except NotFoundError:
        raise _not_found()


@router.post("/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    language: Annotated[Language, Depends(get_language)],
    discussions: DiscussionService = Depends(get_discussion_service),
    profile_service: ProfileService = Depends(get_profile_service),
) -> Comment:
    """Comment on a post, or reply to a comment with `parent_id`."""
    try:
        comment = await discussions.add_comment(
            current_user.id,
            post_id,
            body.content,
            parent_id=body.parent_id,
            language=language,
        )
    except NotFoundError as e:
        raise _not_found(str(e))

    await profile_service.record_engagement(current_user.id, EngagementAction.COMMENT)
    return comment


async def _react(
    discussions: DiscussionService,
    profile_service: ProfileService,
    user_id: str,
    target_type: ReactionTarget,
    target_id: str,
    kind: ReactionKind,
    post_id: Optional[str] = None,
) -> ReactionResponse:
    try:
        result = await discussions.react(user_id, target_type, target_id, kind, post_id=post_id)
    except NotFoundError as e:
        raise _not_found(str(e))
    except PreconditionFailedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Reaction changed, please retry")

    if result.first_reaction and result.reaction == ReactionKind.LIKE:
        await profile_service.record_engagement(user_id, EngagementAction.LIKE)
    return ReactionResponse(
        reaction=result.reaction.value if result.reaction else None,
        likes_count=result.likes_count,
        dislikes_count=result.dislikes_count,
    )


@router.post("/{post_id}/reactions", response_model=ReactionResponse)
async def react_to_post(
    post_id: str,
    body: ReactionRequest,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    discussions: DiscussionService = Depends(get_discussion_service),
    profile_service: ProfileService = Depends(get_profile_service),
) -> ReactionResponse:
    """Like or dislike a post; repeating the same reaction removes it."""
    return await _react(
        discussions,
        profile_service,
        current_user.id,
        ReactionTarget.POST,
        post_id,
        ReactionKind(body.kind.value),
    )


@router.post("/{post_id}/comments/{comment_id}/reactions", response_model=ReactionResponse)
async def react_to_comment(
    post_id: str,
    comment_id: str,
    body: ReactionRequest,
    current_user: Annotated[UserProfileDocument, Depends(get_current_user)],
    discussions: DiscussionService = Depends(get_discussion_service),
    profile_service: ProfileService = Depends(get_profile_service),
) -> ReactionResponse:
    """Like or dislike a comment or reply."""
    return await _react(
        discussions,
        profile_service,
        current_user.id,
        ReactionTarget.COMMENT,
        comment_id,
        ReactionKind(body.kind.value),
        post_id=post_id,
    )
