"""Prompt templates for lesson, quiz, expert and chat generation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

LESSON_PROMPT = """You are an educational content generator for an online learning platform. \
Based on the provided learning material, create a structured lesson.

Material: {material}

Subject: {subject}

Respond ONLY with valid JSON, no additional text, using this structure:
{{
  "title": "A clear, descriptive lesson title",
  "content": "Detailed lesson content in markdown, with headings, bullet points and examples",
  "keyPoints": ["3 to 7 key takeaways"],
  "difficulty": "BEGINNER" or "INTERMEDIATE" or "ADVANCED"
}}

Make the lesson engaging, clear and educational."""

QUIZ_PROMPT = """You are a quiz generator for an educational platform. Based on the provided \
lesson, create a quiz with {min_questions}-{max_questions} questions.

Lesson Title: {title}

Lesson Content: {content}

Respond ONLY with valid JSON, no additional text, using this structure:
{{
  "questions": [
    {{
      "type": "TEXT" or "SINGLE" or "MULTIPLE",
      "text": "The question",
      "correctAnswer": "TEXT: expected answer. SINGLE: the correct option. MULTIPLE: array of correct options",
      "options": ["4 to 6 options, only for SINGLE and MULTIPLE"],
      "order": 1
    }}
  ]
}}

Requirements:
- Mix TEXT, SINGLE and MULTIPLE questions
- SINGLE: correctAnswer is exactly one of the options
- MULTIPLE: correctAnswer is an array of option strings
- Questions test understanding of the lesson's key concepts
- Number questions from 1 to N"""

EXPERT_PROMPT = """You are an AI tutor generator for an educational platform. Based on the \
following survey responses, create a personalized tutor persona.

Survey:
- Learning style: {learning_style}
- Preferred tone: {preferred_tone}
- Expertise level: {expertise_level}
- Interests: {interests}
- Communication preference: {communication_preference}

Respond ONLY with valid JSON, no additional text, using this structure:
{{
  "name": "A memorable name for the tutor",
  "personality": "Personality traits matching the survey (2-3 sentences)",
  "communicationStyle": "How the tutor talks with the learner (2-3 sentences)",
  "appearance": "One of: avatar1, avatar2, avatar3, avatar4, avatar5"
}}"""

CHAT_SYSTEM_PROMPT = """You are {name}, an AI tutor with the following characteristics:

Personality: {personality}

Communication Style: {communication_style}

Help the learner with their questions. Be helpful, encouraging and educational. \
Keep replies concise but informative (usually 2-4 sentences) and stay in character."""


def lesson_messages(material: str, subject: str) -> list[dict[str, str]]:
    return [{"role": "user", "content": LESSON_PROMPT.format(material=material, subject=subject)}]


def quiz_messages(content: str, title: str, min_questions: int, max_questions: int) -> list[dict[str, str]]:
    prompt = QUIZ_PROMPT.format(
        content=content, title=title, min_questions=min_questions, max_questions=max_questions
    )
    return [{"role": "user", "content": prompt}]


def expert_messages(survey: dict[str, Any]) -> list[dict[str, str]]:
    interests = survey.get("interests") or []
    prompt = EXPERT_PROMPT.format(
        learning_style=survey.get("learning_style", ""),
        preferred_tone=survey.get("preferred_tone", ""),
        expertise_level=survey.get("expertise_level", ""),
        interests=", ".join(interests),
        communication_preference=survey.get("communication_preference", ""),
    )
    return [{"role": "user", "content": prompt}]


def chat_messages(
    message: str,
    name: str,
    personality: str,
    communication_style: str,
    history: Sequence[dict[str, str]],
) -> list[dict[str, str]]:
    """System persona, then prior turns (oldest first), then the new message."""
    system = CHAT_SYSTEM_PROMPT.format(
        name=name, personality=personality, communication_style=communication_style
    )
    return [
        {"role": "system", "content": system},
        *history,
        {"role": "user", "content": message},
    ]
