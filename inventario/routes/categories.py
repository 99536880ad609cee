# inventario/routes/categories.py
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services.catalog import CategoryService
from services.providers import get_category_service
from utils.audit import write_log
from utils.tokenJWT import require_admin, require_manager, require_staff
import schemas.category as category_schemas
import schemas.common as common_schemas

router = APIRouter(prefix="/api/categorias", tags=["Categorías"])


def _serialize(categories) -> List[category_schemas.CategoryResponse]:
    return [category_schemas.CategoryResponse.from_model(c) for c in categories]


@router.get("", response_model=List[category_schemas.CategoryResponse])
def list_categories(service: CategoryService = Depends(get_category_service), _: User = Depends(require_staff)):
    return _serialize(service.list())


@router.get("/buscar", response_model=List[category_schemas.CategoryResponse])
def search_categories(nombre: str = Query(...), service: CategoryService = Depends(get_category_service),
                      _: User = Depends(require_staff)):
    return _serialize(service.search(nombre))


@router.get("/nombre/{nombre}", response_model=category_schemas.CategoryResponse)
def category_by_name(nombre: str, service: CategoryService = Depends(get_category_service),
                     _: User = Depends(require_staff)):
    return category_schemas.CategoryResponse.from_model(service.find_by_name(nombre))


@router.get("/con-productos", response_model=List[category_schemas.CategoryResponse])
def categories_with_products(service: CategoryService = Depends(get_category_service),
                             _: User = Depends(require_staff)):
    return _serialize(service.with_products())


@router.get("/sin-productos", response_model=List[category_schemas.CategoryResponse])
def categories_without_products(service: CategoryService = Depends(get_category_service),
                                _: User = Depends(require_staff)):
    return _serialize(service.without_products())


@router.get("/existe/{nombre}", response_model=category_schemas.CategoryExistsResponse)
def category_exists(nombre: str, service: CategoryService = Depends(get_category_service),
                    _: User = Depends(require_staff)):
    return category_schemas.CategoryExistsResponse(nombre=nombre, existe=service.exists(nombre))


@router.get("/{categoria_id}/cantidad-productos", response_model=category_schemas.CategoryCountResponse)
def count_category_products(categoria_id: int, service: CategoryService = Depends(get_category_service),
                            _: User = Depends(require_staff)):
    return category_schemas.CategoryCountResponse(
        categoria_id=categoria_id, cantidad_productos=service.count_products(categoria_id)
    )


@router.get("/{categoria_id}", response_model=category_schemas.CategoryResponse)
def get_category(categoria_id: int, service: CategoryService = Depends(get_category_service),
                 _: User = Depends(require_staff)):
    category = service.get(categoria_id)
    return category_schemas.CategoryResponse.from_model(category, service.count_products(categoria_id))


@router.post("", response_model=category_schemas.CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: category_schemas.CategoryRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: CategoryService = Depends(get_category_service),
    current_user: User = Depends(require_manager),
):
    category = service.create(payload.nombre, payload.descripcion)
    write_log(db, user=current_user, action="CATEGORY_CREATE", resource="categorias", request=request,
              meta={"categoria_id": category.id, "nombre": category.name})
    return category_schemas.CategoryResponse.from_model(category, 0)


@router.put("/{categoria_id}", response_model=category_schemas.CategoryResponse)
def update_category(
    categoria_id: int,
    payload: category_schemas.CategoryRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: CategoryService = Depends(get_category_service),
    current_user: User = Depends(require_manager),
):
    category = service.update(categoria_id, payload.nombre, payload.descripcion)
    write_log(db, user=current_user, action="CATEGORY_UPDATE", resource="categorias", request=request,
              meta={"categoria_id": category.id})
    return category_schemas.CategoryResponse.from_model(category)


@router.delete("/{categoria_id}", response_model=common_schemas.MessageResponse)
def delete_category(
    categoria_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: CategoryService = Depends(get_category_service),
    current_user: User = Depends(require_admin),
):
    category = service.delete(categoria_id)
    write_log(db, user=current_user, action="CATEGORY_DELETE", resource="categorias", request=request,
              meta={"categoria_id": categoria_id, "nombre": category.name})
    return common_schemas.MessageResponse(message=f"Categoría '{category.name}' eliminada correctamente")
