from __future__ import annotations
from typing import Dict

MESSAGES: Dict[str, str] = {
    "unsupported_format": "শুধুমাত্র JSON বা Excel (.xlsx, .xls) ফাইল সাপোর্টেড",
    "invalid_json": "ভুল JSON ফরম্যাট",
    "not_array": "ডেটা অ্যারে ফরম্যাটে হতে হবে",
    "not_enough_data": "এক্সেল ফাইলে পর্যাপ্ত ডেটা নেই",
    "unreadable_file": "এক্সেল ফাইল পড়তে সমস্যা",
    "no_valid_students": "কোনো বৈধ শিক্ষার্থী ডেটা পাওয়া যায়নি",
}


class UploadError(ValueError):
    """Upload rejected as a whole; ``code`` is stable, ``message`` is shown to the user."""

    code = "upload_error"

    def __init__(self, detail: str = ""):
        base = MESSAGES.get(self.code, self.code)
        self.detail = detail
        self.message = f"{base}: {detail}" if detail else base
        super().__init__(self.message)


class UnsupportedFileError(UploadError):
    code = "unsupported_format"


class InvalidJSONError(UploadError):
    code = "invalid_json"


class NotArrayError(UploadError):
    code = "not_array"


class NotEnoughDataError(UploadError):
    code = "not_enough_data"


class UnreadableFileError(UploadError):
    code = "unreadable_file"


class NoValidStudentsError(UploadError):
    code = "no_valid_students"
