import tensorflow as tf


def conv_block(inputs, filters, pool=True):
    """
    3x3 same-padded convolution with ReLU, optionally followed by 2x2 max pooling.
    Pooling halves both the time and mel axes.
    """
    x = tf.keras.layers.Conv2D(filters, (3, 3), padding='same', activation='relu')(inputs)
    if pool:
        x = tf.keras.layers.MaxPooling2D((2, 2))(x)
    return x


def classifier_head(inputs, num_classes):
    """
    Global Average Pooling -> Dropout -> Dense -> Dropout -> softmax

    Averaging over time and frequency makes the head independent of where
    in the clip the breath noise sits.
    """
    x = tf.keras.layers.GlobalAveragePooling2D()(inputs)
    x = tf.keras.layers.Dropout(0.5)(x)
    x = tf.keras.layers.Dense(64, activation='relu')(x)
    x = tf.keras.layers.Dropout(0.3)(x)
    return tf.keras.layers.Dense(num_classes, activation='softmax')(x)
