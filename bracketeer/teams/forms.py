"""Forms for the teams blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length, Optional

from .models import (
    TEAM_NAME_MAX_LENGTH,
    TEAM_NAME_MIN_LENGTH,
    TEAM_TAG_MAX_LENGTH,
    TEAM_TAG_MIN_LENGTH,
)


class TeamForm(FlaskForm):
    """Form for creating a team."""

    name = StringField(
        "Team Name",
        validators=[
            DataRequired(),
            Length(min=TEAM_NAME_MIN_LENGTH, max=TEAM_NAME_MAX_LENGTH),
        ],
    )
    tag = StringField(
        "Tag",
        validators=[
            DataRequired(),
            Length(min=TEAM_TAG_MIN_LENGTH, max=TEAM_TAG_MAX_LENGTH),
        ],
    )
    game = StringField("Game", validators=[DataRequired()])
    avatar = StringField("Avatar", validators=[Optional(), Length(max=500)])


class UpdateTeamForm(FlaskForm):
    """Form for editing a team."""

    name = StringField(
        "Team Name",
        validators=[
            Optional(),
            Length(min=TEAM_NAME_MIN_LENGTH, max=TEAM_NAME_MAX_LENGTH),
        ],
    )
    tag = StringField(
        "Tag",
        validators=[
            Optional(),
            Length(min=TEAM_TAG_MIN_LENGTH, max=TEAM_TAG_MAX_LENGTH),
        ],
    )
    avatar = StringField("Avatar", validators=[Optional(), Length(max=500)])


class MemberForm(FlaskForm):
    """Form naming a user to add, remove, or promote."""

    userId = StringField("User", validators=[DataRequired()])
