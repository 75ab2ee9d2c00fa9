"""Answering agent: synthesizer, prompts and answer memory."""
from docchat.agent.agent import AnswerSynthesizer
from docchat.agent.memory import AnswerCache
from docchat.agent.prompts import CannedAnswers, CombinedPrompt, DocumentPrompt, WebPrompt

__all__ = [
    "AnswerSynthesizer",
    "AnswerCache",
    "CannedAnswers",
    "CombinedPrompt",
    "DocumentPrompt",
    "WebPrompt",
]
