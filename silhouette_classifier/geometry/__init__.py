"""Corner-set data contracts and silhouette normalization."""
