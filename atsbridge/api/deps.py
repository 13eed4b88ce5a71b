"""Request-scoped collaborators, wired on ``app.state`` by ``create_app``."""

from typing import Annotated

from fastapi import Depends, Request

from atsbridge.config import Settings
from atsbridge.engine.result_sync import ClientFactory
from atsbridge.notifications.email import EmailSender


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_client_factory(request: Request) -> ClientFactory:
    return request.app.state.client_factory


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


SettingsDep = Annotated[Settings, Depends(get_settings)]
ClientFactoryDep = Annotated[ClientFactory, Depends(get_client_factory)]
EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]
