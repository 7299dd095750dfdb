"""Turn endpoints: submitting a phrase and voting on it."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter

from ..schemas import CreateSubmissionRequest, CreateVoteRequest, SubmissionOut, VoteOut, VoteWithVoter
from ..state import coordinator

router = APIRouter(prefix="/api", tags=["game"])


@router.post("/submissions", response_model=SubmissionOut)
async def create_submission(req: CreateSubmissionRequest):
    return await coordinator.submit_phrase(
        req.room_id,
        req.player_id,
        req.round,
        req.phrase,
        req.actual_type,
    )


@router.post("/votes", response_model=VoteOut)
async def create_vote(req: CreateVoteRequest):
    return await coordinator.cast_vote(req.submission_id, req.voter_id, req.guessed_type)


@router.get("/submissions/{submission_id}/votes", response_model=List[VoteWithVoter])
async def list_votes(submission_id: int):
    return await coordinator.list_votes(submission_id)
