from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.purchase_service import PurchaseService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, missing_fields
from stock.services import ServiceError


@csrf_exempt
@api_view(["GET"])
def list_purchases(request):
    result = PurchaseService.get_all_purchases(
        page=int(request.GET.get('page', 1)),
        per_page=int(request.GET.get('per_page', 20)),
        search=request.GET.get('search'),
        product_id=request.GET.get('product_id'),
    )
    return APIResponse.success(data=result)


@csrf_exempt
@api_view(["GET"])
def get_purchase(request, purchase_id):
    try:
        purchase = PurchaseService.get_purchase(purchase_id)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=PurchaseService.serialize(purchase))


@csrf_exempt
@api_view(["POST"])
def create_purchase(request):
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
        result = PurchaseService.create_purchase(**data)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.created(data=result['purchase'], message=result['message'])


@csrf_exempt
@api_view(["PUT", "PATCH"])
def update_purchase(request, purchase_id):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = PurchaseService.update_purchase(purchase_id, **data)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data=result['purchase'], message=result['message'])


@csrf_exempt
@api_view(["DELETE"])
def delete_purchase(request, purchase_id):
    try:
        result = PurchaseService.delete_purchase(purchase_id)
    except ServiceError as e:
        return APIResponse.from_service_error(e)

    return APIResponse.success(data={'deleted_entries': result['deleted_entries']}, message=result['message'])
