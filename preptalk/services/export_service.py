"""Word export of newspaper analyses."""

import io
import re
from datetime import datetime, timezone

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

DOCX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
OPTION_LABELS = ['A', 'B', 'C', 'D']


def add_inline_markdown_runs(paragraph, text):
    parts = re.split(r'(\*\*.+?\*\*|__.+?__|\*.+?\*|_.+?_)', str(text or ''))
    for part in parts:
        if not part:
            continue
        if (part.startswith('**') and part.endswith('**') and len(part) >= 4) or (part.startswith('__') and part.endswith('__') and len(part) >= 4):
            run = paragraph.add_run(part[2:-2])
            run.bold = True
            continue
        if (part.startswith('*') and part.endswith('*') and len(part) >= 3) or (part.startswith('_') and part.endswith('_') and len(part) >= 3):
            run = paragraph.add_run(part[1:-1])
            run.italic = True
            continue
        paragraph.add_run(part.replace('**', '').replace('__', ''))


def append_markdown(doc, markdown_text):
    lines = str(markdown_text or '').split('\n')
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        numbered_match = re.match(r'^\d+\.\s+(.*)$', line)
        if not line:
            i += 1
            continue
        if line.startswith('### '):
            doc.add_heading(line[4:], level=3)
        elif line.startswith('## '):
            doc.add_heading(line[3:], level=2)
        elif line.startswith('# '):
            doc.add_heading(line[2:], level=1)
        elif line.startswith('> '):
            p = doc.add_paragraph(style='Intense Quote')
            add_inline_markdown_runs(p, line[2:])
        elif line.startswith('- ') or line.startswith('* '):
            p = doc.add_paragraph(style='List Bullet')
            add_inline_markdown_runs(p, line[2:])
        elif numbered_match:
            p = doc.add_paragraph(style='List Number')
            add_inline_markdown_runs(p, numbered_match.group(1))
        else:
            paragraph_lines = [line]
            while i + 1 < len(lines):
                next_line = lines[i + 1].strip()
                if (
                    next_line
                    and not next_line.startswith('#')
                    and not next_line.startswith('> ')
                    and not next_line.startswith('- ')
                    and not next_line.startswith('* ')
                    and not re.match(r'^\d+\.\s+', next_line)
                ):
                    paragraph_lines.append(next_line)
                    i += 1
                else:
                    break
            p = doc.add_paragraph()
            add_inline_markdown_runs(p, ' '.join(paragraph_lines))
        i += 1


def append_mcqs(doc, mcqs):
    if not mcqs:
        return
    doc.add_heading('Prelims Practice Questions', level=2)
    for number, mcq in enumerate(mcqs, start=1):
        p = doc.add_paragraph()
        run = p.add_run(f"{number}. {mcq.get('question', '')}")
        run.bold = True
        options = mcq.get('options', [])
        for label, option in zip(OPTION_LABELS, options):
            doc.add_paragraph(f"({label}) {option}")
        answer = mcq.get('answer', '')
        if answer in options:
            answer = f"({OPTION_LABELS[options.index(answer)]}) {answer}"
        p = doc.add_paragraph()
        p.add_run('Answer: ').bold = True
        p.add_run(str(answer))
        if mcq.get('explanation'):
            p = doc.add_paragraph()
            p.add_run('Explanation: ').bold = True
            p.add_run(mcq['explanation'])


def append_mains_questions(doc, questions):
    if not questions:
        return
    doc.add_heading('Mains Practice Questions', level=2)
    for number, item in enumerate(questions, start=1):
        p = doc.add_paragraph()
        run = p.add_run(f"{number}. {item.get('question', '')}")
        run.bold = True
        if item.get('guidance'):
            doc.add_heading('Guidance for Answer', level=3)
            append_markdown(doc, item['guidance'])


def build_analysis_docx(entry):
    """Return a BytesIO holding the .docx for one history entry."""
    analysis = entry.get('analysis') or {}
    metadata = analysis.get('metadata') or {}
    doc = Document()
    style = doc.styles['Normal']
    style.font.name = 'Calibri'
    style.font.size = Pt(11)

    title = doc.add_heading('PrepTalk Newspaper Analysis', level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    timestamp = entry.get('timestamp')
    details = []
    if timestamp:
        details.append(datetime.fromtimestamp(float(timestamp), tz=timezone.utc).strftime('%d %B %Y'))
    if metadata.get('examType'):
        details.append(metadata['examType'])
    if metadata.get('analysisFocus'):
        details.append(metadata['analysisFocus'])
    if details:
        p = doc.add_paragraph(' | '.join(details))
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    if entry.get('articleUrl'):
        doc.add_paragraph(f"Source: {entry['articleUrl']}")

    if analysis.get('summary'):
        doc.add_heading('Summary', level=1)
        doc.add_paragraph(analysis['summary'])
    doc.add_heading('Analysis', level=1)
    append_markdown(doc, analysis.get('analysis', ''))
    append_mcqs(doc, (analysis.get('prelims') or {}).get('mcqs', []))
    append_mains_questions(doc, (analysis.get('mains') or {}).get('questions', []))

    docx_io = io.BytesIO()
    doc.save(docx_io)
    docx_io.seek(0)
    return docx_io
