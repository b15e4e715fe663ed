"""Forms for the payments blueprint."""

from flask_wtf import FlaskForm
from wtforms import IntegerField
from wtforms.validators import DataRequired, NumberRange

MIN_CHARGE_AMOUNT = 1000


class ChargeForm(FlaskForm):
    """Form for requesting a wallet top-up."""

    amount = IntegerField(
        "Amount", validators=[DataRequired(), NumberRange(min=MIN_CHARGE_AMOUNT)]
    )
