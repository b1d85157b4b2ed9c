"""Prompt templates and inventory helpers for PrepTalk LLM flows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


PROMPT_REGISTRY_VERSION = "2026-10-01"

MCQ_JSON_SHAPE = """{{
      "question": "...",
      "options": ["...", "...", "...", "..."],
      "answer": "exact text of the correct option",
      "explanation": "...",
      "subject": "most granular syllabus topic, e.g. GS Paper II - Polity & Governance - Federal Structure"
    }}"""


PROMPT_RELEVANCE_CHECK = """You are an AI assistant for a UPSC exam preparation tool. Decide whether the article below is relevant for a UPSC aspirant.

Rules:
- Politics, international relations, Indian economy, modern history, geography, environment, science & technology policy, social issues and governance are RELEVANT.
- Entertainment, celebrity gossip, sports results, fiction and advertising are NOT RELEVANT.
- Cross-reference the article with the syllabus documents below.

Return ONLY valid JSON in exactly this format:
{{"isRelevant": true, "reasoning": "one sentence"}}

Source text:
\"\"\"{source_text}\"\"\"

--- PRELIMS SYLLABUS ---
{prelims_syllabus}
--- MAINS SYLLABUS ---
{mains_syllabus}
"""

PROMPT_NEWSPAPER_ANALYSIS = """You are a world-class editor and exam coach for Indian competitive exam aspirants with deep expertise in the UPSC syllabus.

Tasks:
1. Identify the most specific syllabus topic the article relates to and state it at the start of the analysis.
2. Write a plain-text 2-3 sentence summary of the article's core message in "summary".
3. Write a detailed, well-structured markdown analysis in "analysis" following the focus instructions below.

Exam: {exam_type}
Analysis focus: {analysis_focus}
Question difficulty: {difficulty}
Extra focus areas: {focus_areas}

Focus instructions:
{focus_instructions}

Difficulty guide:
- Standard: direct recall of facts from the article; Mains questions use "Discuss" or "Explain".
- Advanced: connect multiple facts or nuanced implications; Mains questions use "Critically analyze" or "Compare and contrast".
- Expert: analytical, statement-based ("Consider the following statements..."); Mains questions use "Elucidate" or complex scenarios.

Return ONLY valid JSON, without markdown fences, in exactly this format:
{{
  "summary": "...",
  "analysis": "markdown",
  "prelims": {{
    "mcqs": [
    """ + MCQ_JSON_SHAPE + """
    ]
  }},
  "mains": {{
    "questions": [
      {{"question": "...", "guidance": "bullet-point answer outline", "subject": "..."}}
    ]
  }}
}}
Every MCQ must have exactly 4 distinct options and "answer" must repeat one option verbatim.
Leave "mcqs" or "questions" empty when the focus does not ask for them.

Source article:
\"\"\"{source_text}\"\"\"

--- PRELIMS SYLLABUS START ---
{prelims_syllabus}
--- PRELIMS SYLLABUS END ---

--- MAINS SYLLABUS START ---
{mains_syllabus}
--- MAINS SYLLABUS END ---
"""

PROMPT_NEWSPAPER_VERIFICATION = """You are a meticulous editor and final reviewer for an exam preparation tool. Check an AI-generated analysis before it is shown to a student.

Instructions:
1. Fact-check "analysis", "summary", every MCQ and every Mains question against the original article. Correct anything unsupported by the article.
2. Keep the JSON structure identical. Every MCQ keeps exactly 4 distinct options and an "answer" equal to one of them.
3. Improve clarity and syllabus tagging without adding unverified information.
4. "summary" stays plain text of 2-3 sentences.

Return ONLY the corrected JSON object.

Original article:
\"\"\"{source_text}\"\"\"

Generated analysis JSON:
{generated_json}
"""

ANALYSIS_FOCUS_INSTRUCTIONS = {
    'Generate Questions (Mains & Prelims)': (
        '- Analysis: a short "## Syllabus Mapping" section and "## Key Points".\n'
        '- Generate 3-5 Prelims MCQs in "prelims.mcqs" and 2-3 Mains questions in "mains.questions".\n'
        '- Each Mains "guidance" outlines key concepts, an Introduction/Body/Conclusion structure and examples from the article.'
    ),
    'Mains Analysis (Arguments, Keywords, Viewpoints)': (
        '- Start with "## Central Theme" naming the core Mains topic.\n'
        '- Use "### Main Arguments", "### Counter-Arguments", "### Key Statistics & Data" and "### Important Keywords".\n'
        '- Present arguments as bullet points and impactful statements as blockquotes.\n'
        '- Add 1-2 Mains questions.'
    ),
    'Prelims Fact Finder (Key Names, Dates, Schemes)': (
        '- List factual information relevant for Prelims under "### Key People", "### Locations Mentioned", '
        '"### Government Schemes", "### Important Dates" and "### Organizations".\n'
        '- Add 3-5 Prelims MCQs testing these facts.'
    ),
    'Critical Analysis (Tone, Bias, Fact vs. Opinion)': (
        '- Use "### Author\'s Tone", "### Assessment of Bias", "### Fact vs. Opinion" and "### Objective of the Article".\n'
        '- Under "Fact vs. Opinion" list labelled examples of each.'
    ),
    'Vocabulary Builder for Editorials': (
        '- Pick 5-7 advanced words. Give each its own heading with bold "Definition:", '
        '"Contextual Meaning:" and "Example Sentence:" labels.'
    ),
    'Comprehensive Summary': (
        '- "## Executive Summary" of about 150-200 words.\n'
        '- "### Key Takeaways" with 3-4 bullets, each linked to a syllabus topic.'
    ),
}

PROMPT_INTERVIEW_TURN = """You are an expert interviewer for a {interview_type} interview at {difficulty} level, conducting a mock UPSC personality test.

Current state:
Transcript (JSON): {transcript}
Question count: {question_count}
Role profile: {role_profile}

Rules:
1. If question count is 0, ask an engaging first question based on the interview type and role profile.
2. Otherwise ask a relevant follow-up based on the candidate's last answer.
3. Keep questions concise.
4. If question count is {max_questions} or more, the interview is complete: set "isComplete" to true, "question" to null and give concise overall feedback on clarity, relevance and structure in "feedback".

Return ONLY valid JSON in exactly this format:
{{"question": "... or null", "feedback": "... or null", "isComplete": false}}
"""

PROMPT_WRITING_CONTENT_AGENT = """You are a senior UPSC Mains examiner assessing CONTENT quality.

Exam: {exam_type}
Subject: {subject}
Question: {question_text}

Answer:
\"\"\"{content}\"\"\"

Judge relevance to the question, depth, accuracy, use of examples, data and multiple dimensions.
Return ONLY valid JSON:
{{"score": 0-100, "strengths": ["..."], "improvements": ["..."], "missingKeywords": ["..."]}}
"""

PROMPT_WRITING_STRUCTURE_AGENT = """You are a UPSC writing coach assessing STRUCTURE.

Question: {question_text}

Answer:
\"\"\"{content}\"\"\"

Judge introduction, logical flow, paragraphing, use of headings or points, and conclusion.
Return ONLY valid JSON:
{{"score": 0-100, "presentation": 0-100, "paragraphStructure": "short description", "strengths": ["..."], "improvements": ["..."]}}
"""

PROMPT_WRITING_LANGUAGE_AGENT = """You are an English language examiner assessing LANGUAGE in a UPSC answer.

Answer:
\"\"\"{content}\"\"\"

Judge grammar, clarity, vocabulary, conciseness and tone.
Return ONLY valid JSON:
{{"score": 0-100, "readabilityScore": 0-100, "vocabularyLevel": "basic|intermediate|advanced", "sentenceComplexity": "simple|moderate|complex", "strengths": ["..."], "improvements": ["..."]}}
"""

PROMPT_WRITING_SYNTHESIS = """You are the chief examiner combining three specialist reviews of a UPSC answer into final feedback.

Question: {question_text}
Word count: {word_count}
Time spent (seconds): {time_spent}

Content review: {content_review}
Structure review: {structure_review}
Language review: {language_review}

Return ONLY valid JSON:
{{
  "timeManagement": 0-100,
  "strengths": ["top 3 strengths"],
  "improvements": ["top 3 improvements"],
  "suggestions": ["3 concrete next steps"],
  "peerPercentile": 0-100
}}
"""

PROMPT_WRITING_PRACTICE = """Create a {difficulty} {type} writing practice prompt for the {exam_type} exam.
Topic hint: {topic}

Return ONLY valid JSON:
{{
  "title": "...",
  "content": "the full prompt or question the student will answer",
  "guidelines": ["..."],
  "timeLimit": minutes,
  "wordLimit": words,
  "tags": ["..."]
}}
"""

PROMPT_HANDWRITING_EXTRACTION = """Extract all handwritten or printed answer text from the attached file.
Instructions:
1. Preserve paragraphs and bullet points.
2. Do not correct spelling or grammar.
3. Omit page headers, page numbers and margins notes that are not part of the answer.

Return ONLY valid JSON:
{{"extractedText": "...", "confidence": 0.0-1.0, "legibility": "good|fair|poor"}}
"""

PROMPT_PDF_TO_QUIZ = """You are an expert in educational content extraction. Analyze the attached PDF and extract multiple-choice questions suitable for the {exam_type} exam.

Instructions:
1. Extract up to {question_count} questions with their options, correct answer and explanation.
2. Options may be labelled (a)-(d) or 1-4. Drop the labels.
3. The correct answer may be bold, starred or listed in an answer key. When none is given, work it out.
4. Infer the subject when possible.

Return ONLY valid JSON:
{{
  "questions": [
    """ + MCQ_JSON_SHAPE + """
  ]
}}
"""

PROMPT_DAILY_QUIZ_TOPUP = """Generate {count} original UPSC Prelims multiple-choice questions.
Quiz type: {quiz_type}
Subject: {subject}
Difficulty: {difficulty}

Each question has exactly 4 distinct options and one correct answer.

Return ONLY valid JSON:
{{
  "questions": [
    """ + MCQ_JSON_SHAPE + """
  ]
}}
"""


@dataclass(frozen=True)
class PromptRecord:
    prompt_id: str
    name: str
    template: str


PROMPT_RECORDS: List[PromptRecord] = [
    PromptRecord("relevance_check", "Newspaper relevance check", PROMPT_RELEVANCE_CHECK),
    PromptRecord("newspaper_analysis", "Newspaper analysis", PROMPT_NEWSPAPER_ANALYSIS),
    PromptRecord("newspaper_verification", "Newspaper analysis verification", PROMPT_NEWSPAPER_VERIFICATION),
    PromptRecord("interview_turn", "Mock interview turn", PROMPT_INTERVIEW_TURN),
    PromptRecord("writing_content_agent", "Writing evaluation: content", PROMPT_WRITING_CONTENT_AGENT),
    PromptRecord("writing_structure_agent", "Writing evaluation: structure", PROMPT_WRITING_STRUCTURE_AGENT),
    PromptRecord("writing_language_agent", "Writing evaluation: language", PROMPT_WRITING_LANGUAGE_AGENT),
    PromptRecord("writing_synthesis", "Writing evaluation: synthesis", PROMPT_WRITING_SYNTHESIS),
    PromptRecord("writing_practice", "Writing practice prompt", PROMPT_WRITING_PRACTICE),
    PromptRecord("handwriting_extraction", "Answer sheet text extraction", PROMPT_HANDWRITING_EXTRACTION),
    PromptRecord("pdf_to_quiz", "PDF to quiz", PROMPT_PDF_TO_QUIZ),
    PromptRecord("daily_quiz_topup", "Daily quiz question top-up", PROMPT_DAILY_QUIZ_TOPUP),
]


def get_prompt_template(prompt_id: str) -> str:
    safe_id = str(prompt_id or "").strip()
    for record in PROMPT_RECORDS:
        if record.prompt_id == safe_id:
            return record.template
    raise KeyError(f"Unknown prompt id: {safe_id}")


def render_prompt(prompt_id: str, **values) -> str:
    return get_prompt_template(prompt_id).format(**values)


def get_prompt_metadata() -> Dict[str, object]:
    return {
        "version": PROMPT_REGISTRY_VERSION,
        "count": len(PROMPT_RECORDS),
        "ids": [record.prompt_id for record in PROMPT_RECORDS],
    }
