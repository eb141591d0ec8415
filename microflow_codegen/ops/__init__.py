"""Code generators for the supported model operators."""