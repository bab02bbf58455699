"""
User-facing messages (Arabic) and auth constants.
"""
from __future__ import annotations

MIN_PASSWORD_LENGTH = 8
# bcrypt only accepts 72 bytes of input
MAX_PASSWORD_BYTES = 72

# bcrypt work factor
BCRYPT_ROUNDS = 10

MSG_REGISTER_DOMAIN = "التسجيل متاح فقط لإيميلات @{domain}"
MSG_LOGIN_DOMAIN = "الدخول متاح فقط لإيميلات @{domain}"
MSG_PASSWORD_TOO_SHORT = "كلمة المرور لازم 8 أحرف على الأقل."
MSG_PASSWORD_TOO_LONG = "كلمة المرور طويلة جدًا."
MSG_ALREADY_REGISTERED = "هذا الإيميل مسجل مسبقًا. جرّب تسجيل الدخول."
# Same text for unknown email and wrong password.
MSG_INVALID_CREDENTIALS = "بيانات الدخول غير صحيحة."
MSG_GENERIC_ERROR = "صار خطأ."

MSG_CLIENT_NAME_REQUIRED = "اسم العميل مطلوب."
MSG_CLIENT_CREATED = "تمت إضافة العميل."

MSG_CSRF_INVALID = "انتهت صلاحية النموذج. حدّث الصفحة وحاول مرة أخرى."
