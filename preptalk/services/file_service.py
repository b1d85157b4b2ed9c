"""Upload validation helpers for in-memory files."""

from werkzeug.utils import secure_filename

ALLOWED_WRITING_UPLOAD_MIME_TYPES = {
    'image/jpeg',
    'image/png',
    'image/heic',
    'image/webp',
    'application/pdf',
}
ALLOWED_PDF_MIME_TYPES = {'application/pdf', 'application/x-pdf'}


def allowed_file(filename, allowed_extensions):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions


def read_upload(file_storage, max_bytes):
    """Return ``(data, None)`` or ``(None, error_message)``; reads at most ``max_bytes + 1``."""
    if file_storage is None or not file_storage.filename:
        return None, 'No file uploaded'
    data = file_storage.stream.read(max_bytes + 1)
    if not data:
        return None, 'Uploaded file is empty'
    if len(data) > max_bytes:
        return None, f"File exceeds the {max(1, max_bytes // (1024 * 1024))}MB limit"
    return data, None


def bytes_have_pdf_signature(data):
    return bytes(data[:5]) == b'%PDF-'


def bytes_match_image_mime(data, mime_type):
    head = bytes(data[:12])
    if mime_type == 'image/jpeg':
        return head.startswith(b'\xff\xd8\xff')
    if mime_type == 'image/png':
        return head.startswith(b'\x89PNG\r\n\x1a\n')
    if mime_type == 'image/webp':
        return head[:4] == b'RIFF' and head[8:12] == b'WEBP'
    if mime_type == 'image/heic':
        return head[4:8] == b'ftyp'
    return False


def bytes_match_mime(data, mime_type):
    if mime_type == 'application/pdf':
        return bytes_have_pdf_signature(data)
    return bytes_match_image_mime(data, mime_type)


def safe_upload_name(filename, fallback='upload'):
    return secure_filename(str(filename or '')) or fallback
