"""Forms for the users blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import AnyOf, DataRequired, Length, Optional, Regexp

from bracketeer.core.constants import USER_ROLES, USER_STATUSES

USERNAME_VALIDATORS = [
    Length(min=3, max=20),
    Regexp(r"^[A-Za-z0-9_.]+$", message="Only letters, digits, '.' and '_'."),
]
EMAIL_VALIDATORS = [
    Length(max=100),
    Regexp(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", message="Invalid email address."),
]


class CreateUserForm(FlaskForm):
    """Form for creating a user account record."""

    username = StringField("Username", validators=[DataRequired(), *USERNAME_VALIDATORS])
    email = StringField("Email", validators=[Optional(), *EMAIL_VALIDATORS])


class UpdateProfileForm(FlaskForm):
    """Form for a user updating their own profile."""

    username = StringField("Username", validators=[Optional(), *USERNAME_VALIDATORS])
    email = StringField("Email", validators=[Optional(), *EMAIL_VALIDATORS])
    avatar = StringField("Avatar", validators=[Optional(), Length(max=500)])


class UserAdminForm(FlaskForm):
    """Form for an administrator changing a user's role or status."""

    role = StringField("Role", validators=[Optional(), AnyOf(USER_ROLES)])
    status = StringField("Status", validators=[Optional(), AnyOf(USER_STATUSES)])
