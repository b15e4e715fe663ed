"""Forms for the registration blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import Optional


class RegistrationForm(FlaskForm):
    """Form for entering a tournament; team events need a team id."""

    teamId = StringField("Team", validators=[Optional()])
