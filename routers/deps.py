from fastapi import Request

from analyzers.face_age import FaceAgeAdapter
from scan.model_loader import ModelLoader


def get_loader(request: Request) -> ModelLoader:
    return request.app.state.model_loader


def get_adapter(request: Request) -> FaceAgeAdapter:
    return request.app.state.face_adapter
