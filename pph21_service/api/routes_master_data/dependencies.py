"""Common dependencies for master data routes."""
from typing import Annotated, TypeAlias

from fastapi import Depends

from pph21_service.services.master_data_service import MasterDataService, get_master_data_service

MasterDataServiceDep: TypeAlias = Annotated[MasterDataService, Depends(get_master_data_service)]
