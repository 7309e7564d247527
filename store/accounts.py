import logging

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction

from .exceptions import AccountError, EmailAlreadyRegistered, PasswordChangeError

logger = logging.getLogger(__name__)

User = get_user_model()

PROFILE_FIELDS = ('name', 'email', 'phone', 'dni', 'address', 'city')
MIN_PASSWORD_LENGTH = 6


def email_taken(email, exclude_pk=None):
    qs = User.objects.filter(email__iexact=email)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


def register(email, password, name, dni, phone, address="", city=""):
    email = (email or "").strip().lower()
    if not email or not password or not name:
        raise AccountError("Name, email and password are required.")
    if email_taken(email):
        raise EmailAlreadyRegistered()

    user = User(
        username=email,
        email=email,
        name=name.strip(),
        dni=(dni or "").strip(),
        phone=(phone or "").strip(),
        address=(address or "").strip(),
        city=(city or "").strip(),
    )
    try:
        validate_password(password, user)
    except ValidationError as e:
        raise AccountError(" ".join(e.messages))

    user.set_password(password)
    with transaction.atomic():
        user.save()
    logger.info("Registered customer %s", user.pk)
    return user


def authenticate_customer(request, email, password):
    email = (email or "").strip()
    if not email or not password:
        return None
    return authenticate(request, username=email, password=password)


def update_profile(user, **fields):
    """
    Blank values keep what the customer already had on file.
    """
    changed = []
    for field in PROFILE_FIELDS:
        value = fields.get(field)
        if value is None:
            continue
        value = value.strip()
        if not value:
            continue
        if field == 'email':
            value = value.lower()
            if email_taken(value, exclude_pk=user.pk):
                raise EmailAlreadyRegistered()
            user.username = value
            changed.append('username')
        if getattr(user, field) != value:
            setattr(user, field, value)
            changed.append(field)

    if changed:
        user.save(update_fields=sorted(set(changed)))
        logger.info("Customer %s updated %s", user.pk, ", ".join(sorted(set(changed))))
    return user


def change_password(user, current, new, confirm):
    if not current or not new or not confirm:
        raise PasswordChangeError("All password fields are required.")
    if new != confirm:
        raise PasswordChangeError("The new passwords do not match.")
    if len(new) < MIN_PASSWORD_LENGTH:
        raise PasswordChangeError(
            f"The new password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    if not user.check_password(current):
        raise PasswordChangeError("Your current password is incorrect.")

    user.set_password(new)
    user.save(update_fields=['password'])
    logger.info("Customer %s changed password", user.pk)
    return user
