"""Parsing, mapping and validation of bulk question bank uploads (xlsx / csv / json)."""

import csv
import io
import json

import openpyxl

ALLOWED_UPLOAD_EXTENSIONS = {
    'xlsx': 'excel',
    'csv': 'csv',
    'json': 'json',
}
ALLOWED_UPLOAD_MIME_TYPES = {
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'text/csv',
    'application/csv',
    'application/vnd.ms-excel',
    'application/json',
    'text/plain',
    'application/octet-stream',
}

PRELIMS_EXCEL_COLUMNS = {
    'Question ID': 'questionId',
    'Question': 'question',
    'Question Type': 'questionType',
    'Option A': 'options.A',
    'Option B': 'options.B',
    'Option C': 'options.C',
    'Option D': 'options.D',
    'Correct Answer': 'correctAnswer',
    'Explanation': 'explanation',
    'Year': 'year',
    'Paper': 'paper',
    'Question Number': 'questionNumber',
    'Subject': 'subject',
    'Subtopics': 'subtopics',
    'Syllabus Topic': 'syllabusTopic',
    'Difficulty Level': 'difficultyLevel',
    'Concept Level': 'conceptLevel',
    'Source': 'source',
    'Verified': 'verified',
    'Image URLs': 'imageUrls',
    'References': 'references',
}

MAINS_EXCEL_COLUMNS = {
    'Question ID': 'questionId',
    'Question': 'question',
    'Question Type': 'questionType',
    'Sub Parts': 'subParts',
    'Year': 'year',
    'Paper': 'paper',
    'Question Number': 'questionNumber',
    'Total Marks': 'totalMarks',
    'Time Allocation': 'timeAllocation',
    'Subject': 'subject',
    'Subtopics': 'subtopics',
    'Syllabus Topic': 'syllabusTopic',
    'Difficulty Level': 'difficultyLevel',
    'Concept Level': 'conceptLevel',
    'Expected Approach': 'expectedApproach',
    'Key Points': 'keyPoints',
    'Common Mistakes': 'commonMistakes',
    'Current Affairs Topics': 'currentAffairsTopics',
    'Practice Level': 'practiceLevel',
}

COLUMN_MAPPINGS = {
    'Prelims': PRELIMS_EXCEL_COLUMNS,
    'Mains': MAINS_EXCEL_COLUMNS,
}
LIST_FIELDS = {'subject', 'subtopics', 'syllabusTopic', 'imageUrls', 'references', 'keyPoints', 'commonMistakes', 'currentAffairsTopics'}


class QuestionImportError(ValueError):
    pass


def detect_file_type(filename):
    if '.' not in str(filename or ''):
        return None
    return ALLOWED_UPLOAD_EXTENSIONS.get(filename.rsplit('.', 1)[1].lower())


def _cell_text(value):
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_excel_rows(data):
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        raise QuestionImportError(f"Could not read Excel file: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        headers = [_cell_text(value) for value in next(rows, ())]
        records = []
        for row in rows:
            values = [_cell_text(value) for value in row]
            if not any(values):
                continue
            records.append({header: values[index] if index < len(values) else '' for index, header in enumerate(headers) if header})
        return records
    finally:
        workbook.close()


def read_csv_rows(data):
    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as exc:
        raise QuestionImportError('CSV file must be UTF-8 encoded.') from exc
    reader = csv.DictReader(io.StringIO(text))
    records = []
    for row in reader:
        cleaned = {str(key or '').strip(): str(value or '').strip() for key, value in row.items() if key}
        if any(cleaned.values()):
            records.append(cleaned)
    return records


def read_json_questions(data):
    try:
        parsed = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise QuestionImportError(f"Invalid JSON file: {exc}") from exc
    if isinstance(parsed, dict):
        parsed = parsed.get('questions', [])
    if not isinstance(parsed, list):
        raise QuestionImportError('JSON file must contain a list of questions.')
    return [item for item in parsed if isinstance(item, dict)]


def set_nested(target, path, value):
    keys = path.split('.')
    current = target
    for key in keys[:-1]:
        current = current.setdefault(key, {})
    current[keys[-1]] = value


def split_list(value):
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return [part.strip() for part in str(value or '').split(',') if part.strip()]


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in {'true', 'yes', '1', 'y'}


def _as_int(value):
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def transform_question(record, exam_type, defaults):
    """Apply list splitting, type coercion and counters to an already-mapped record."""
    question = {key: value for key, value in record.items() if value not in ('', None)}
    for field in LIST_FIELDS:
        if field in question:
            question[field] = split_list(question[field])
    if exam_type == 'Prelims' and 'correctAnswer' in question:
        question['correctAnswer'] = [answer.upper() for answer in split_list(question['correctAnswer'])]
    if exam_type == 'Mains' and isinstance(question.get('subParts'), str):
        try:
            question['subParts'] = json.loads(question['subParts'])
        except json.JSONDecodeError:
            question['subParts'] = []
    for field in ('year', 'questionNumber', 'totalMarks', 'timeAllocation'):
        if field in question:
            parsed = _as_int(question[field])
            question[field] = parsed if parsed is not None else question[field]
    question.setdefault('year', defaults.get('year'))
    if defaults.get('paper'):
        question.setdefault('paper', defaults['paper'])
    question['verified'] = parse_bool(question.get('verified', False))
    question['examType'] = exam_type
    question['attemptCount'] = 0
    question['correctAttempts'] = 0
    question['averageTime'] = 0
    question['successRate'] = 0
    question['isActive'] = True
    question['version'] = 1
    return question


def map_row(row, exam_type):
    mapping = COLUMN_MAPPINGS[exam_type]
    mapped = {}
    for column, path in mapping.items():
        if column in row and row[column] not in ('', None):
            set_nested(mapped, path, row[column])
    return mapped


def parse_upload(data, file_type, exam_type, defaults):
    if file_type == 'excel':
        rows = [map_row(row, exam_type) for row in read_excel_rows(data)]
    elif file_type == 'csv':
        rows = [map_row(row, exam_type) for row in read_csv_rows(data)]
    elif file_type == 'json':
        rows = read_json_questions(data)
    else:
        raise QuestionImportError('Unsupported file type.')
    return [transform_question(row, exam_type, defaults) for row in rows]


def validate_questions(questions, exam_type):
    errors = []
    for index, question in enumerate(questions):
        row = index + 1
        if not str(question.get('question', '') or '').strip():
            errors.append(f"Row {row}: Question text is required")
        if not isinstance(question.get('year'), int):
            errors.append(f"Row {row}: Valid year is required")
        if not str(question.get('paper', '') or '').strip():
            errors.append(f"Row {row}: Paper is required")
        if exam_type == 'Prelims':
            options = question.get('options') or {}
            if not isinstance(options, dict) or not all(str(options.get(letter, '') or '').strip() for letter in 'ABCD'):
                errors.append(f"Row {row}: All four options (A, B, C, D) are required")
            if not question.get('correctAnswer'):
                errors.append(f"Row {row}: Correct answer is required")
        if exam_type == 'Mains' and not isinstance(question.get('totalMarks'), int):
            errors.append(f"Row {row}: Total marks is required")
    return errors
