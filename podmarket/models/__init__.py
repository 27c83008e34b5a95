# -*- coding: utf-8 -*-
from podmarket.infra.db import db

from .user import User
from .session import UserSession
from .category import Category
from .podcast import Podcast
from .purchase import Purchase, PurchaseStatus
