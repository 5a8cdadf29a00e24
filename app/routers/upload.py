from fastapi import APIRouter, UploadFile, File, HTTPException, Depends
from app.routers.auth import get_current_admin
from app.models.user import User
from app.services.s3 import S3Service, get_s3_service

router = APIRouter()

@router.post("/product-image")
async def upload_product_image(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_admin),
    s3: S3Service = Depends(get_s3_service),
):
    """
    Upload a product image to S3.
    Returns the public URL to store on the product.
    Admin only.
    """
    # Validate file type
    if not file.content_type or not file.content_type.startswith('image/'):
        raise HTTPException(status_code=400, detail="File must be an image")

    content = await file.read()

    url = s3.upload_product_image(
        file_content=content,
        file_name=file.filename or "image",
        content_type=file.content_type
    )

    if not url:
        raise HTTPException(status_code=500, detail="Failed to upload image")

    return {
        "url": url,
        "message": "Image uploaded successfully"
    }
