"""Forms for the disputes blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import URL, AnyOf, DataRequired, Length, Optional

from bracketeer.core.constants import (
    DISPUTE_DECISIONS,
    DISPUTE_EVIDENCE_DESCRIPTION_MAX_LENGTH,
    DISPUTE_FINAL_COMMENT_MAX_LENGTH,
    DISPUTE_REASON_MAX_LENGTH,
)


class DisputeForm(FlaskForm):
    """Form for opening a dispute on a match."""

    matchId = StringField("Match", validators=[DataRequired()])
    reason = StringField(
        "Reason",
        validators=[DataRequired(), Length(max=DISPUTE_REASON_MAX_LENGTH)],
    )


class CommentForm(FlaskForm):
    """Form for posting to a dispute thread."""

    content = StringField(
        "Comment",
        validators=[DataRequired(), Length(max=DISPUTE_FINAL_COMMENT_MAX_LENGTH)],
    )


class EvidenceForm(FlaskForm):
    """Form for attaching evidence to a dispute."""

    url = StringField("URL", validators=[DataRequired(), URL()])
    description = StringField(
        "Description",
        validators=[Optional(), Length(max=DISPUTE_EVIDENCE_DESCRIPTION_MAX_LENGTH)],
    )


class ResolveForm(FlaskForm):
    """Form for an administrator's ruling."""

    decision = StringField(
        "Decision", validators=[DataRequired(), AnyOf(DISPUTE_DECISIONS)]
    )
    finalComment = StringField(
        "Final Comment",
        validators=[Optional(), Length(max=DISPUTE_FINAL_COMMENT_MAX_LENGTH)],
    )
