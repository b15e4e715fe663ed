"""Forms for the games blueprint."""

from flask_wtf import FlaskForm
from wtforms import SelectMultipleField, StringField
from wtforms.validators import DataRequired, Length, Optional

from .models import GAME_MODES, PLATFORMS


class GameForm(FlaskForm):
    """Form for registering a game."""

    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    shortName = StringField("Short Name", validators=[Optional(), Length(max=30)])
    iconUrl = StringField("Icon URL", validators=[DataRequired(), Length(max=500)])
    bannerUrl = StringField("Banner URL", validators=[Optional(), Length(max=500)])
    platforms = SelectMultipleField(
        "Platforms", choices=[(p, p) for p in PLATFORMS], validators=[DataRequired()]
    )
    supportedModes = SelectMultipleField(
        "Supported Modes",
        choices=[(m, m) for m in GAME_MODES],
        validators=[DataRequired()],
    )
