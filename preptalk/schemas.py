"""Request schemas for the PrepTalk JSON API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator

AnalysisType = Literal['comprehensive', 'summary', 'factual', 'editorial']
AnalysisFocus = Literal[
    'Generate Questions (Mains & Prelims)',
    'Mains Analysis (Arguments, Keywords, Viewpoints)',
    'Prelims Fact Finder (Key Names, Dates, Schemes)',
    'Critical Analysis (Tone, Bias, Fact vs. Opinion)',
    'Vocabulary Builder for Editorials',
    'Comprehensive Summary',
]
QuizType = Literal[
    'free-daily',
    'ncert-foundation',
    'past-year',
    'subject-wise',
    'current-affairs-basic',
    'current-affairs-advanced',
    'mock-prelims',
    'adaptive',
    'topper-bank',
    'final-revision',
]
AnswerLetter = Literal['A', 'B', 'C', 'D']
Tier = Literal['free', 'foundation', 'practice', 'mains', 'interview', 'elite']
PaidTier = Literal['foundation', 'practice', 'mains', 'interview', 'elite']
ExamStage = Literal['Prelims', 'Mains']

ANALYSIS_TYPE_DEFAULT_FOCUS = {
    'comprehensive': 'Generate Questions (Mains & Prelims)',
    'summary': 'Comprehensive Summary',
    'factual': 'Prelims Fact Finder (Key Names, Dates, Schemes)',
    'editorial': 'Critical Analysis (Tone, Bias, Fact vs. Opinion)',
}


class NewspaperAnalysisRequest(BaseModel):
    articleText: str = Field(..., min_length=100, max_length=50000)
    articleUrl: Optional[HttpUrl] = None
    analysisType: AnalysisType = 'comprehensive'
    analysisFocus: Optional[AnalysisFocus] = None
    difficulty: Literal['Standard', 'Advanced', 'Expert'] = 'Standard'
    focusAreas: List[str] = Field(default_factory=list, max_length=20)
    examType: str = Field('UPSC Civil Services', min_length=1, max_length=50)
    saveToHistory: bool = True

    def resolved_focus(self):
        return self.analysisFocus or ANALYSIS_TYPE_DEFAULT_FOCUS[self.analysisType]


class MCQPayload(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)
    options: List[str] = Field(..., min_length=4, max_length=4)
    answer: str = Field(..., min_length=1)
    explanation: str = ''
    subject: str = ''
    historyId: str = Field(..., min_length=1, max_length=160)


class SaveQuestionRequest(BaseModel):
    question: MCQPayload


class SavedStatusRequest(BaseModel):
    questionIds: List[str] = Field(default_factory=list, max_length=500)


class QuizAttemptRequest(BaseModel):
    historyId: str = Field(..., min_length=1, max_length=160)
    question: str = Field(..., min_length=1, max_length=2000)
    selectedOption: str = Field(..., min_length=1, max_length=2000)
    isCorrect: bool
    subject: str = 'General'
    difficulty: int = Field(5, ge=1, le=10)


class DailyQuizGenerateRequest(BaseModel):
    quizType: QuizType
    difficulty: Literal['easy', 'medium', 'hard'] = 'medium'
    subject: str = Field('General Studies', min_length=1, max_length=100)
    maxQuestions: int = Field(10, ge=1, le=100)


class DailyQuizSubmitRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    questionIndex: int = Field(..., ge=0)
    selectedAnswer: AnswerLetter
    timeSpent: float = Field(0, ge=0)


class DailyQuizProgressRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    currentQuestionIndex: int = Field(..., ge=0)
    answers: List[Optional[AnswerLetter]] = Field(default_factory=list)
    bookmarked: List[bool] = Field(default_factory=list)
    timeRemaining: float = Field(0, ge=0)


class DailyQuizCompleteRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    finalAnswers: Optional[List[Optional[AnswerLetter]]] = None


class MockInterviewStartRequest(BaseModel):
    interviewType: str = Field('UPSC Personality Test', min_length=1, max_length=100)
    difficulty: str = Field('medium', min_length=1, max_length=50)
    roleProfile: Optional[str] = Field(None, max_length=2000)


class MockInterviewAnswerRequest(BaseModel):
    answer: str = Field(..., min_length=1, max_length=5000)


class WritingMetadata(BaseModel):
    timeSpent: Optional[int] = Field(None, ge=1)
    wordCount: Optional[int] = Field(None, ge=1)
    keystrokes: Optional[int] = Field(None, ge=1)
    pauses: List[float] = Field(default_factory=list)
    source: Literal['text', 'upload', 'ocr'] = 'text'


class WritingEvaluationRequest(BaseModel):
    content: str = Field(..., min_length=100, max_length=10000)
    questionText: str = Field(..., min_length=10)
    examType: str = 'UPSC Mains'
    subject: str = 'General Studies'
    metadata: Optional[WritingMetadata] = None


class WritingSessionRequest(BaseModel):
    evaluationId: Optional[str] = None
    score: float = Field(..., ge=0, le=100)
    detailedScores: Dict[str, float] = Field(default_factory=dict)
    subject: str = 'General Studies'
    examType: str = 'UPSC Mains'
    wordCount: int = Field(0, ge=0)
    timeSpent: int = Field(0, ge=0)


class PracticePromptRequest(BaseModel):
    type: Literal['essay', 'precis', 'argumentative', 'report', 'descriptive']
    difficulty: Literal['beginner', 'intermediate', 'advanced']
    topic: Optional[str] = Field(None, max_length=300)
    examType: str = 'UPSC Mains'


class PdfToQuizForm(BaseModel):
    numQuestions: int = Field(10, ge=1, le=30)
    examType: str = Field('UPSC Prelims', min_length=1, max_length=50)


class QuestionSearchQuery(BaseModel):
    examType: ExamStage
    years: List[int] = Field(default_factory=list)
    papers: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    subtopics: List[str] = Field(default_factory=list)
    difficultyLevel: List[str] = Field(default_factory=list)
    questionType: List[str] = Field(default_factory=list)
    verified: Optional[bool] = None
    limit: int = Field(20, ge=1)
    offset: int = Field(0, ge=0)
    sortBy: Literal['year', 'difficulty', 'successRate', 'attemptCount'] = 'year'
    sortOrder: Literal['asc', 'desc'] = 'desc'

    @field_validator('limit')
    @classmethod
    def cap_limit(cls, value):
        return min(value, 100)


class QuestionCreateRequest(BaseModel):
    examType: ExamStage
    questionData: Dict[str, object]


class QuestionUpdateRequest(BaseModel):
    questionData: Dict[str, object]


class QuestionUploadForm(BaseModel):
    examType: ExamStage
    year: int
    paper: Optional[str] = Field(None, max_length=100)

    @field_validator('year')
    @classmethod
    def year_in_range(cls, value):
        max_year = datetime.now(timezone.utc).year + 1
        if value < 2000 or value > max_year:
            raise ValueError(f'year must be between 2000 and {max_year}')
        return value


class NoteCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=20000)
    topic: str = Field('General', max_length=200)
    tags: List[str] = Field(default_factory=list, max_length=20)
    importance: int = Field(5, ge=1, le=10)
    difficulty: int = Field(5, ge=1, le=10)
    sourceHistoryId: Optional[str] = None


class NoteUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=20000)
    topic: Optional[str] = Field(None, max_length=200)
    tags: Optional[List[str]] = Field(None, max_length=20)
    importance: Optional[int] = Field(None, ge=1, le=10)
    difficulty: Optional[int] = Field(None, ge=1, le=10)


class NoteReviewRequest(BaseModel):
    quality: Literal['poor', 'average', 'good', 'excellent']


class CheckAccessRequest(BaseModel):
    requiredTier: Optional[Tier] = None
    feature: Optional[str] = Field(None, max_length=80)
    quizType: Optional[QuizType] = None


class CheckoutRequest(BaseModel):
    tier: PaidTier
    billingCycle: Literal['monthly', 'yearly'] = 'monthly'


class OnboardingRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    targetYear: int = Field(..., ge=2024, le=2100)
    attemptNumber: int = Field(1, ge=1, le=10)
    optionalSubject: Optional[str] = Field(None, max_length=100)
    stage: Literal['assessment', 'prelims', 'mains', 'interview'] = 'assessment'
    preferredLanguage: str = Field('English', max_length=40)
    studyHoursPerDay: float = Field(4, ge=0, le=24)
