from pydantic import ValidationError as PydanticValidationError

from marketplace.utils.errors import ValidationError


def validate(schema_cls, data):
    """Parse ``data`` with ``schema_cls`` or raise a 400 listing every field error."""
    try:
        return schema_cls.model_validate(data or {})
    except PydanticValidationError as e:
        errors = []
        for detail in e.errors():
            field = '.'.join(str(part) for part in detail['loc']) or None
            message = detail['msg']
            if message.startswith('Value error, '):
                message = message[len('Value error, '):]
            errors.append({'field': field, 'message': message})
        raise ValidationError('Validation error', {'errors': errors}) from e
