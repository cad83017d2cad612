"""Bizops: operations backend for a small training business."""
