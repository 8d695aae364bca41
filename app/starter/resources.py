"""
Localized text: validation messages, page messages, column titles and
short date patterns. English is the fallback for every lookup.
"""
from __future__ import annotations

from flask import current_app, has_app_context, has_request_context, request

DEFAULT_LANGUAGE = "en"

_RESOURCES: dict[str, dict[str, dict[str, str]]] = {
    "en": {
        "validations": {
            "required": "{0} field is required.",
            "email": "{0} is not a valid email address.",
            "min_length": "{0} must be at least {1} characters long.",
            "max_length": "{0} can not be longer than {1} characters.",
            "unique_username": "Username is already taken.",
            "unique_email": "Email address is already in use.",
            "unique_title": "Role with this title already exists.",
            "password_mismatch": "Passwords do not match.",
            "incorrect_password": "Incorrect password.",
            "incorrect_credentials": "Invalid username or password.",
            "locked_account": "Your account has been locked.",
            "expired_token": "Recovery token has expired or is not valid.",
        },
        "messages": {
            "account_created": "Account has been created.",
            "account_updated": "Account has been updated.",
            "profile_updated": "Profile has been updated.",
            "profile_deleted": "Profile has been deleted.",
            "role_created": "Role has been created.",
            "role_updated": "Role has been updated.",
            "role_deleted": "Role has been deleted.",
            "recovery_sent": "If an account with this email exists, a recovery link has been sent to it.",
            "password_reset": "Password has been reset. You can log in now.",
            "recovery_subject": "Password recovery",
            "recovery_body": "To reset your password follow this link (valid for {1} minutes):\n\n{0}\n",
        },
        "table": {
            "no_data_found": "No data found",
            "first_page": "First",
            "last_page": "Last",
            "filter": "Filter",
        },
        "titles": {
            "id": "Id",
            "created_at": "Creation date",
            "username": "Username",
            "email": "Email",
            "password": "Password",
            "new_password": "New password",
            "new_password_confirmation": "Confirm new password",
            "is_locked": "Locked",
            "is_persistent": "Remember me",
            "role_id": "Role",
            "role_title": "Role",
            "title": "Title",
            "permission_ids": "Permissions",
            "account_id": "Account",
            "action": "Action",
            "entity_name": "Entity",
            "entity_id": "Entity id",
            "changes": "Changes",
        },
        "formats": {
            "short_date": "%m/%d/%Y",
        },
    },
    "lt": {
        "validations": {
            "required": "Laukas „{0}“ yra privalomas.",
            "email": "Laukas „{0}“ nėra teisingas el. pašto adresas.",
            "min_length": "Laukas „{0}“ turi būti bent {1} simbolių ilgio.",
            "max_length": "Laukas „{0}“ negali būti ilgesnis nei {1} simbolių.",
            "unique_username": "Toks vartotojo vardas jau užimtas.",
            "unique_email": "Toks el. pašto adresas jau naudojamas.",
            "unique_title": "Tokia rolė jau egzistuoja.",
            "password_mismatch": "Slaptažodžiai nesutampa.",
            "incorrect_password": "Neteisingas slaptažodis.",
            "incorrect_credentials": "Neteisingas vartotojo vardas arba slaptažodis.",
            "locked_account": "Jūsų paskyra užrakinta.",
            "expired_token": "Atkūrimo raktas nebegalioja.",
        },
        "table": {
            "no_data_found": "Duomenų nerasta",
        },
        "titles": {
            "created_at": "Sukūrimo data",
            "username": "Vartotojo vardas",
            "email": "El. paštas",
            "password": "Slaptažodis",
            "is_locked": "Užrakinta",
            "role_title": "Rolė",
            "role_id": "Rolė",
            "title": "Pavadinimas",
        },
        "formats": {
            "short_date": "%Y-%m-%d",
        },
    },
}

LANGUAGES = tuple(_RESOURCES)


def current_language() -> str:
    default = DEFAULT_LANGUAGE
    if has_app_context():
        configured = (current_app.config.get("LANGUAGE") or DEFAULT_LANGUAGE).lower()
        if configured in _RESOURCES:
            default = configured
    if has_request_context():
        return request.accept_languages.best_match(LANGUAGES, default=default) or default
    return default


def _lookup(section: str, key: str, language: str | None = None) -> str | None:
    language = language or current_language()
    for lang in (language, DEFAULT_LANGUAGE):
        value = _RESOURCES.get(lang, {}).get(section, {}).get(key)
        if value is not None:
            return value
    return None


def validation(key: str, *args: object) -> str:
    template = _lookup("validations", key)
    if template is None:
        raise KeyError(f"Unknown validation message: {key}")
    return template.format(*args)


def message(key: str, *args: object) -> str:
    template = _lookup("messages", key)
    if template is None:
        raise KeyError(f"Unknown message: {key}")
    return template.format(*args)


def table(key: str) -> str:
    return _lookup("table", key) or key


def property_title(view: type, name: str) -> str:
    return (
        _lookup("titles", f"{view.__name__}.{name}")
        or _lookup("titles", name)
        or name.replace("_", " ").capitalize()
    )


def short_date_pattern() -> str:
    return _lookup("formats", "short_date") or "%Y-%m-%d"
