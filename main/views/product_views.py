from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.product_service import ProductService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, missing_fields
from stock.services import ServiceError


@csrf_exempt
@api_view(["GET"])
def list_products(request):
    page = int(request.GET.get('page', 1))
    per_page = int(request.GET.get('per_page', 20))
    search = request.GET.get('search')
    stock_only = request.GET.get('stock_only', 'false').lower() == 'true'

    result = ProductService.get_all_products(
        page=page,
        per_page=per_page,
        search=search,
        stock_only=stock_only,
    )

    return APIResponse.success(data=result)


@csrf_exempt
@api_view(["GET"])
def get_product(request, product_id):
    try:
        product = ProductService.get_product(product_id)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=ProductService.serialize(product))


@csrf_exempt
@api_view(["POST"])
def create_product(request):
    data, error = parse_json_body(request)
    if error:
        return error

    missing = missing_fields(data, ['name', 'packing_type'])
    if missing:
        return APIResponse.validation_error(
            errors={field: f'{field} is required' for field in missing},
            message=f'Missing required fields: {", ".join(missing)}'
        )

    try:
        result = ProductService.create_product(**data)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.created(data=result['product'], message=result['message'])


@csrf_exempt
@api_view(["PUT", "PATCH"])
def update_product(request, product_id):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = ProductService.update_product(product_id, **data)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=result['product'], message=result['message'])


@csrf_exempt
@api_view(["DELETE"])
def delete_product(request, product_id):
    try:
        result = ProductService.delete_product(product_id)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(message=result['message'])


@csrf_exempt
@api_view(["GET"])
def get_product_stock(request, product_id):
    try:
        result = ProductService.get_stock(product_id, request.GET.get('as_of'))
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=result)
