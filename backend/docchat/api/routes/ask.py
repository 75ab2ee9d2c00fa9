"""Ask endpoint for question answering."""
from fastapi import APIRouter, Depends, HTTPException, Request

from docchat.agent.agent import AnswerSynthesizer
from docchat.api.schemas import AnswerResponse, AskRequest

router = APIRouter()


def get_synthesizer(request: Request) -> AnswerSynthesizer:
    """Get answer synthesizer from app state."""
    synthesizer = getattr(request.app.state, "synthesizer", None)
    if synthesizer is None:
        raise HTTPException(status_code=503, detail="Answer synthesizer not initialized")
    return synthesizer


@router.post("/ask", response_model=AnswerResponse)
async def ask_question(
    request: AskRequest,
    synthesizer: AnswerSynthesizer = Depends(get_synthesizer),
):
    """
    Answer a question outside of a live room.

    Uses the same cache-first pipeline as room questions, so a question asked
    here with the same room id and web search flag shares cached answers.

    Args:
        request: AskRequest with question, room id and web search flag
        synthesizer: Answer synthesizer instance

    Returns:
        AnswerResponse with answer text and attributions
    """
    answer = await synthesizer.answer(
        question=request.question,
        room_id=request.room_id,
        web_search_enabled=request.web_search_enabled,
    )
    return AnswerResponse.from_answer(answer)
