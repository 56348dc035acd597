"""User-facing message catalog.

Every message that crosses the HTTP boundary is looked up here by key so the
API can answer in the configured locale. Unknown locales fall back to English
and unknown keys fall back to the key itself.
"""

DEFAULT_LOCALE = "en"

CATALOG = {
    "en": {
        # auth
        "register_success": "Registration successful",
        "login_success": "Login successful",
        "username_taken": "This username is already taken",
        "invalid_credentials": "Invalid username or password",
        "login_required": "Please log in",
        "invalid_token": "Invalid or expired token",
        "user_not_found": "User not found",
        "admin_only": "Administrators only",
        "admin_registration_disabled": "Administrator accounts cannot be self-registered",
        "history_forbidden": "You are not allowed to view this history",
        # books
        "book_not_found": "Book not found",
        "book_created": "Book added successfully",
        "book_updated": "Book updated successfully",
        "book_deleted": "Book deleted successfully",
        # lending
        "borrow_success": "Book borrowed successfully",
        "out_of_stock": "This book is out of stock",
        "already_borrowed": "You have already borrowed this book",
        "transaction_not_found": "Borrow record not found",
        "return_success": "Book returned successfully",
        "already_returned": "This book has already been returned",
        "return_forbidden": "You are not allowed to return this book",
        # users
        "member_deleted": "Member deleted successfully",
        # generic
        "validation_error": "Invalid input",
        "not_found": "Resource not found",
        "internal_error": "Something went wrong, please try again later",
    },
    "th": {
        "register_success": "สมัครสมาชิกสำเร็จ",
        "login_success": "เข้าสู่ระบบสำเร็จ",
        "username_taken": "ชื่อผู้ใช้นี้มีอยู่แล้ว",
        "invalid_credentials": "ชื่อผู้ใช้หรือรหัสผ่านไม่ถูกต้อง",
        "login_required": "กรุณาเข้าสู่ระบบ",
        "invalid_token": "Token ไม่ถูกต้องหรือหมดอายุ",
        "user_not_found": "ไม่พบผู้ใช้งาน",
        "admin_only": "เฉพาะผู้ดูแลระบบเท่านั้น",
        "admin_registration_disabled": "ไม่สามารถสมัครเป็นผู้ดูแลระบบได้",
        "history_forbidden": "ไม่มีสิทธิ์เข้าถึงข้อมูลนี้",
        "book_not_found": "ไม่พบหนังสือ",
        "book_created": "เพิ่มหนังสือสำเร็จ",
        "book_updated": "แก้ไขหนังสือสำเร็จ",
        "book_deleted": "ลบหนังสือสำเร็จ",
        "borrow_success": "ยืมหนังสือสำเร็จ",
        "out_of_stock": "หนังสือหมด",
        "already_borrowed": "คุณยืมหนังสือเล่มนี้อยู่แล้ว",
        "transaction_not_found": "ไม่พบรายการยืม",
        "return_success": "คืนหนังสือสำเร็จ",
        "already_returned": "หนังสือถูกคืนแล้ว",
        "return_forbidden": "ไม่มีสิทธิ์คืนหนังสือเล่มนี้",
        "member_deleted": "ลบสมาชิกสำเร็จ",
        "validation_error": "ข้อมูลไม่ถูกต้อง",
        "not_found": "ไม่พบข้อมูล",
        "internal_error": "เกิดข้อผิดพลาด กรุณาลองใหม่อีกครั้ง",
    },
}


def translate(key: str, locale: str = DEFAULT_LOCALE) -> str:
    catalog = CATALOG.get(locale) or CATALOG[DEFAULT_LOCALE]
    if key in catalog:
        return catalog[key]
    return CATALOG[DEFAULT_LOCALE].get(key, key)


def locale_for(request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return settings.LOCALE if settings is not None else DEFAULT_LOCALE


def translate_for(request, key: str) -> str:
    """Translate ``key`` in the locale configured on the request's app."""
    return translate(key, locale_for(request))
