"""Pydantic models for ZFS datasets."""

from illumos_zfs.models.dataset import Dataset

__all__ = ['Dataset']
