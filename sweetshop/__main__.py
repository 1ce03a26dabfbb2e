"""
Run the Sweet Shop service with uvicorn.

Usage:
    python -m sweetshop
"""
import os
import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "sweetshop.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
