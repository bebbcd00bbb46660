from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.sale_service import SaleService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, missing_fields
from stock.services import ServiceError


@csrf_exempt
@api_view(["GET"])
def list_sales(request):
    try:
        result = SaleService.get_all_sales(
            page=int(request.GET.get('page', 1)),
            per_page=int(request.GET.get('per_page', 20)),
            search=request.GET.get('search'),
            product_id=request.GET.get('product_id'),
            start_date=request.GET.get('start_date'),
            end_date=request.GET.get('end_date'),
        )
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=result)


@csrf_exempt
@api_view(["GET"])
def get_sale(request, sale_id):
    try:
        sale = SaleService.get_sale(sale_id)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=SaleService.serialize(sale))


@csrf_exempt
@api_view(["POST"])
def create_sale(request):
    data, error = parse_json_body(request)
    if error:
        return error

    missing = missing_fields(data, ['product_id', 'quantity'])
    if missing:
        return APIResponse.validation_error(
            errors={field: f'{field} is required' for field in missing},
            message=f'Missing required fields: {", ".join(missing)}'
        )

    try:
        result = SaleService.create_sale(**data)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.created(
        data={'sale': result['sale'], 'stock': result['stock']},
        message=result['message']
    )


@csrf_exempt
@api_view(["PUT", "PATCH"])
def update_sale(request, sale_id):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = SaleService.update_sale(sale_id, **data)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(
        data={'sale': result['sale'], 'stock': result['stock']},
        message=result['message']
    )


@csrf_exempt
@api_view(["DELETE"])
def delete_sale(request, sale_id):
    try:
        result = SaleService.delete_sale(sale_id)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data={'deleted_entries': result['deleted_entries']}, message=result['message'])
