from rest_framework import status
from rest_framework.response import Response


class APIResponse:

    @staticmethod
    def success(data=None, message='Success', status_code=status.HTTP_200_OK):
        body = {'success': True, 'message': message}
        if data is not None:
            body['data'] = data
        return Response(body, status=status_code)

    @staticmethod
    def created(data=None, message='Created'):
        return APIResponse.success(data=data, message=message, status_code=status.HTTP_201_CREATED)

    @staticmethod
    def error(message='Something went wrong', status_code=status.HTTP_400_BAD_REQUEST, code='error', details=None):
        body = {'success': False, 'message': message, 'error': {'code': code}}
        if details:
            body['error']['details'] = details
        return Response(body, status=status_code)

    @staticmethod
    def not_found(message='Not found'):
        return APIResponse.error(message=message, status_code=status.HTTP_404_NOT_FOUND, code='not_found')

    @staticmethod
    def validation_error(errors=None, message='Validation failed'):
        return APIResponse.error(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            code='validation_error',
            details=errors,
        )

    @staticmethod
    def from_service_error(exc):
        from stock.services import NotFoundError, ValidationError, ConfigurationError

        if isinstance(exc, NotFoundError):
            return APIResponse.not_found(message=exc.message)
        if isinstance(exc, ValidationError):
            return APIResponse.validation_error(errors={exc.field or 'non_field': exc.message}, message=exc.message)
        if isinstance(exc, ConfigurationError):
            return APIResponse.error(
                message=exc.message,
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                code='configuration_error',
                details=exc.details,
            )
        return APIResponse.error(message=exc.message, code=exc.code.lower(), details=exc.details)
