from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sellify.runtime import Runtime, get_runtime
from sellify.schemas.conversation import ProductSchema
from sellify.services.knowledge_base import Media, Objection, Product

router = APIRouter(prefix="/api/v1/products")


def _to_schema(product: Product) -> ProductSchema:
    return ProductSchema(
        id=product.id,
        name=product.name,
        short_description=product.short_description,
        long_description=product.long_description,
        price=product.price,
        keywords=list(product.keywords),
        objections=[{"trigger": o.trigger, "answer": o.answer} for o in product.objections],
        media=[{"id": m.id, "media_type": m.media_type, "url": m.url} for m in product.media],
    )


@router.get("", response_model=List[ProductSchema])
def list_products(runtime: Runtime = Depends(get_runtime)):
    return [_to_schema(product) for product in runtime.knowledge_base.get_all_products()]


@router.put("", response_model=List[ProductSchema])
def load_products(products: List[ProductSchema], runtime: Runtime = Depends(get_runtime)):
    """Replace the authorized catalogue."""
    runtime.knowledge_base.load_products(
        Product(
            id=p.id,
            name=p.name,
            short_description=p.short_description,
            long_description=p.long_description,
            price=p.price,
            keywords=list(p.keywords),
            objections=[Objection(trigger=o.trigger, answer=o.answer) for o in p.objections],
            media=[Media(id=m.id, media_type=m.media_type, url=m.url) for m in p.media],
        )
        for p in products
    )
    return [_to_schema(product) for product in runtime.knowledge_base.get_all_products()]


@router.get("/{product_id}", response_model=ProductSchema)
def get_product(product_id: str, runtime: Runtime = Depends(get_runtime)):
    product = runtime.knowledge_base.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return _to_schema(product)
