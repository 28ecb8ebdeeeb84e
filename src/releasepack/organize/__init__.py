"""Moving processed releases and rotating the working directories."""
